import re
import json


def strip_fences(raw: str) -> str:
    """Remove markdown code fences a model may wrap around its answer."""
    raw = re.sub(r'^```(?:json|tsx|typescript|jsx|ts|javascript)?\s*\n?', '', raw.strip(), flags=re.MULTILINE)
    raw = re.sub(r'\n?```\s*$', '', raw, flags=re.MULTILINE)
    return raw.strip()


def extract_json_object(raw: str) -> dict:
    """Parse the substring between the first '{' and the last '}' of ``raw``.

    Tolerates prose before and after the object. Raises ValueError when no
    braces are present and json.JSONDecodeError (a ValueError) when the
    substring is not valid JSON or not an object.
    """
    if raw is None:
        raise ValueError("No content to parse")

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ValueError("No JSON object found in response")

    parsed = json.loads(raw[start:end + 1])
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
