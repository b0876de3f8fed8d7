import os
import time
import logging
from enum import Enum
from typing import Iterable, Mapping

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from sitesmith.errors import NoProviderAvailable, ProviderRequestFailed
from sitesmith.models import ProviderRequest, ProviderResponse, TaskCategory

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
PLACEHOLDER_KEYS = {"", "YOUR_API_KEY_HERE", "your-api-key", "changeme"}


class AuthStyle(str, Enum):
    BEARER = "bearer"   # Authorization: Bearer <key>
    HEADER = "header"   # x-api-key: <key>
    QUERY = "query"     # ?key=<key>


class ResponseShape(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class ProviderSpec(BaseModel):
    key: str
    name: str
    model: str
    base_url: str
    api_key: str = ""
    auth: AuthStyle = AuthStyle.BEARER
    shape: ResponseShape = ResponseShape.OPENAI
    max_tokens: int = 4000
    temperature: float = 0.7

    @property
    def configured(self) -> bool:
        return self.api_key.strip() not in PLACEHOLDER_KEYS

    @property
    def endpoint(self) -> str:
        base = self.base_url.rstrip("/")
        if self.shape == ResponseShape.ANTHROPIC:
            return f"{base}/messages"
        if self.shape == ResponseShape.GOOGLE:
            return f"{base}/models/{self.model}:generateContent"
        return f"{base}/chat/completions"


# key, display name, env prefix, default model, base url, auth, shape, max tokens
PROVIDER_DEFAULTS = [
    ("openai", "OpenAI", "OPENAI", "gpt-4o-mini", "https://api.openai.com/v1",
     AuthStyle.BEARER, ResponseShape.OPENAI, 4000),
    ("anthropic", "Anthropic Claude", "ANTHROPIC", "claude-3-5-sonnet-20241022", "https://api.anthropic.com/v1",
     AuthStyle.HEADER, ResponseShape.ANTHROPIC, 8000),
    ("google", "Google Gemini", "GOOGLE", "gemini-2.5-flash", "https://generativelanguage.googleapis.com/v1beta",
     AuthStyle.QUERY, ResponseShape.GOOGLE, 8000),
    ("groq", "Groq", "GROQ", "llama-3.1-8b-instant", "https://api.groq.com/openai/v1",
     AuthStyle.BEARER, ResponseShape.OPENAI, 4000),
    ("grok", "xAI Grok", "GROK", "grok-4-latest", "https://api.x.ai/v1",
     AuthStyle.BEARER, ResponseShape.OPENAI, 4000),
    ("aiml", "AI/ML API", "AIML", "gpt-4o-mini", "https://api.aimlapi.com/v1",
     AuthStyle.BEARER, ResponseShape.OPENAI, 4000),
    ("openrouter", "OpenRouter", "OPENROUTER", "anthropic/claude-sonnet-4.5", "https://openrouter.ai/api/v1",
     AuthStyle.BEARER, ResponseShape.OPENAI, 8000),
]

CATEGORY_PREFERENCES: dict[TaskCategory, list[str]] = {
    TaskCategory.CODE: ["anthropic", "openai", "openrouter", "google"],
    TaskCategory.PROSE: ["openai", "anthropic", "google", "openrouter"],
    TaskCategory.ANALYSIS: ["anthropic", "openai", "google", "openrouter"],
    TaskCategory.VISION: ["openai", "google", "anthropic"],
    TaskCategory.CHAT: ["groq", "openai", "anthropic", "google", "openrouter"],
}

# Cheap/free tiers first when no category preference is usable
GENERAL_ROTATION = ["groq", "aiml", "grok", "openrouter"]

DEFAULT_SYSTEM_PROMPTS: dict[TaskCategory, str] = {
    TaskCategory.CODE: (
        "You are an expert React, TypeScript and Tailwind CSS developer. "
        "Output only code, no explanations."
    ),
    TaskCategory.PROSE: "You are a senior copywriter and product designer. Be concise and concrete.",
    TaskCategory.ANALYSIS: (
        "You are a senior brand strategist and UX architect. "
        "Respond with strict JSON only, no markdown and no commentary."
    ),
    TaskCategory.VISION: "You are a visual design reviewer.",
    TaskCategory.CHAT: "You are a helpful website-building assistant.",
}


def load_provider_registry(env: Mapping[str, str] | None = None) -> list[ProviderSpec]:
    """Build backend descriptors from ``<PREFIX>_API_KEY`` / ``<PREFIX>_MODEL`` variables."""
    env = os.environ if env is None else env
    specs = []
    for key, name, prefix, model, base_url, auth, shape, max_tokens in PROVIDER_DEFAULTS:
        specs.append(ProviderSpec(
            key=key,
            name=name,
            model=env.get(f"{prefix}_MODEL") or model,
            base_url=base_url,
            api_key=env.get(f"{prefix}_API_KEY", ""),
            auth=auth,
            shape=shape,
            max_tokens=max_tokens,
        ))
    return specs


def _extract_usage(response) -> dict:
    """Extract token usage from an OpenAI SDK response."""
    usage = getattr(response, "usage", None)
    tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
    tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
    return {"tokens_in": tokens_in or 0, "tokens_out": tokens_out or 0}


class ProviderRouter:
    """Picks a backend per task category and speaks each backend's wire format.

    The router never retries across backends; callers walk ``candidates()``.
    """

    def __init__(
        self,
        providers: Iterable[ProviderSpec],
        preferences: dict[TaskCategory, list[str]] | None = None,
        rotation: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.providers: dict[str, ProviderSpec] = {p.key: p for p in providers}
        self.preferences = preferences if preferences is not None else CATEGORY_PREFERENCES
        self.rotation = rotation if rotation is not None else GENERAL_ROTATION
        self._http_client = http_client
        self._timeout = timeout
        self._exhausted: set[str] = set()
        self._openai_clients: dict[str, AsyncOpenAI] = {}

    # ── Selection ──

    def is_usable(self, spec: ProviderSpec) -> bool:
        return spec.configured and spec.key not in self._exhausted

    def mark_exhausted(self, key: str) -> None:
        if key not in self._exhausted:
            logger.warning(f"[router] Marking {key} as exhausted for this process")
        self._exhausted.add(key)

    def reset_exhausted(self) -> None:
        self._exhausted.clear()

    def candidates(self, category: TaskCategory | str, override: str | None = None) -> list[ProviderSpec]:
        """Usable backends in the order they should be tried."""
        category = TaskCategory(category)
        order = ([override] if override else []) + self.preferences.get(category, []) + self.rotation + list(self.providers)

        seen: set[str] = set()
        result = []
        for key in order:
            if key in seen:
                continue
            seen.add(key)
            spec = self.providers.get(key)
            if spec is not None and self.is_usable(spec):
                result.append(spec)
        return result

    def select(self, category: TaskCategory | str, override: str | None = None) -> ProviderSpec:
        category = TaskCategory(category)
        if override:
            spec = self.providers.get(override)
            if spec is None or not self.is_usable(spec):
                logger.warning(f"[router] Override '{override}' is not usable, using {category.value} preferences")

        found = self.candidates(category, override)
        if not found:
            raise NoProviderAvailable(category.value)
        return found[0]

    def status(self) -> list[dict]:
        return [
            {"key": s.key, "name": s.name, "model": s.model, "configured": s.configured, "exhausted": s.key in self._exhausted}
            for s in self.providers.values()
        ]

    # ── Wire format ──

    def build_auth(self, spec: ProviderSpec) -> tuple[str, dict[str, str]]:
        url = spec.endpoint
        headers = {"Content-Type": "application/json"}
        if spec.auth == AuthStyle.HEADER:
            headers["x-api-key"] = spec.api_key
            headers["anthropic-version"] = ANTHROPIC_VERSION
        elif spec.auth == AuthStyle.QUERY:
            url = f"{url}?key={spec.api_key}"
        else:
            headers["Authorization"] = f"Bearer {spec.api_key}"
        return url, headers

    def build_payload(self, spec: ProviderSpec, request: ProviderRequest) -> dict:
        system = request.system_prompt or DEFAULT_SYSTEM_PROMPTS[request.category]

        if spec.shape == ResponseShape.ANTHROPIC:
            return {
                "model": spec.model,
                "max_tokens": spec.max_tokens,
                "temperature": spec.temperature,
                "system": system,
                "messages": [{"role": "user", "content": request.prompt}],
            }
        if spec.shape == ResponseShape.GOOGLE:
            return {
                "systemInstruction": {"parts": [{"text": system}]},
                "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
                "generationConfig": {"maxOutputTokens": spec.max_tokens, "temperature": spec.temperature},
            }
        return {
            "model": spec.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": request.prompt},
            ],
            "max_tokens": spec.max_tokens,
            "temperature": spec.temperature,
        }

    def parse_response(self, spec: ProviderSpec, data: dict) -> ProviderResponse:
        """Unwrap a backend's envelope to a single content string."""
        try:
            if spec.shape == ResponseShape.ANTHROPIC:
                content = data["content"][0]["text"]
                usage = data.get("usage") or {}
                tokens = {"tokens_in": usage.get("input_tokens", 0), "tokens_out": usage.get("output_tokens", 0)}
            elif spec.shape == ResponseShape.GOOGLE:
                content = data["candidates"][0]["content"]["parts"][0]["text"]
                usage = data.get("usageMetadata") or {}
                tokens = {"tokens_in": usage.get("promptTokenCount", 0), "tokens_out": usage.get("candidatesTokenCount", 0)}
            else:
                content = data["choices"][0]["message"]["content"]
                usage = data.get("usage") or {}
                tokens = {"tokens_in": usage.get("prompt_tokens", 0), "tokens_out": usage.get("completion_tokens", 0)}
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderRequestFailed(spec.key, 200, f"Unexpected response shape: {str(data)[:500]}") from e

        if not isinstance(content, str):
            raise ProviderRequestFailed(spec.key, 200, "Response carried no text content")
        return ProviderResponse(backend=spec.key, content=content, usage=tokens)

    # ── Execution ──

    def _openai_client(self, spec: ProviderSpec) -> AsyncOpenAI:
        client = self._openai_clients.get(spec.key)
        if client is None:
            client = AsyncOpenAI(
                base_url=spec.base_url,
                api_key=spec.api_key,
                timeout=self._timeout,
                max_retries=0,
            )
            self._openai_clients[spec.key] = client
        return client

    async def execute_request(self, spec: ProviderSpec, request: ProviderRequest) -> ProviderResponse:
        t0 = time.time()
        if spec.shape == ResponseShape.OPENAI:
            response = await self._execute_openai(spec, request)
        else:
            response = await self._execute_http(spec, request)
        logger.info(
            f"[router] {spec.key} ({spec.model}) answered {request.category.value} request in {time.time() - t0:.1f}s "
            f"| in={response.usage.get('tokens_in', 0)} out={response.usage.get('tokens_out', 0)}"
        )
        return response

    async def _execute_openai(self, spec: ProviderSpec, request: ProviderRequest) -> ProviderResponse:
        client = self._openai_client(spec)
        try:
            completion = await client.chat.completions.create(**self.build_payload(spec, request))
        except openai.APIStatusError as e:
            raise ProviderRequestFailed(spec.key, e.status_code, e.response.text) from e
        except openai.APIError as e:
            raise ProviderRequestFailed(spec.key, None, str(e)) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderRequestFailed(spec.key, 200, "Empty completion")
        return ProviderResponse(backend=spec.key, content=content, usage=_extract_usage(completion))

    async def _execute_http(self, spec: ProviderSpec, request: ProviderRequest) -> ProviderResponse:
        url, headers = self.build_auth(spec)
        payload = self.build_payload(spec, request)
        try:
            if self._http_client is not None:
                resp = await self._http_client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderRequestFailed(spec.key, None, str(e)) from e

        if not resp.is_success:
            raise ProviderRequestFailed(spec.key, resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderRequestFailed(spec.key, resp.status_code, resp.text[:500]) from e
        return self.parse_response(spec, data)
