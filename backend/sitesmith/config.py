import os

from pydantic import BaseModel


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class Settings(BaseModel):
    """Runtime configuration. Use ``Settings.from_env()`` after ``load_dotenv()``."""

    similarity_threshold: float = 0.75
    history_window: int = 10
    history_capacity: int = 100
    prompt_enhance_max_chars: int = 300
    allow_offline_generation: bool = False
    provider_timeout: float | None = None
    max_concurrent_runs: int = 5
    rate_limit_seconds: float = 10
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    generation_seed: int | None = None
    mcp_server_url: str | None = None
    image_generation: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        seed = os.getenv("GENERATION_SEED", "").strip()
        return cls(
            similarity_threshold=float(os.getenv("SIMILARITY_THRESHOLD", "0.75")),
            history_window=int(os.getenv("DESIGN_HISTORY_WINDOW", "10")),
            history_capacity=int(os.getenv("DESIGN_HISTORY_CAP", "100")),
            prompt_enhance_max_chars=int(os.getenv("PROMPT_ENHANCE_MAX_CHARS", "300")),
            allow_offline_generation=_env_bool("ALLOW_OFFLINE_GENERATION"),
            provider_timeout=_env_float("PROVIDER_TIMEOUT"),
            max_concurrent_runs=int(os.getenv("MAX_CONCURRENT_RUNS", "5")),
            rate_limit_seconds=float(os.getenv("RATE_LIMIT_SECONDS", "10")),
            cors_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(","),
            generation_seed=int(seed) if seed else None,
            mcp_server_url=os.getenv("MCP_SERVER_URL") or None,
            image_generation=_env_bool("IMAGE_GENERATION"),
        )
