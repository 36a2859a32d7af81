import os
from typing import Any, Dict

DEFAULT_BASE_URL = "http://localhost:11434/v1"
DEFAULT_MODEL_NAME = "llama3.1:8b-instruct-q4_K_M"
API_KEY_ENV_VAR = "MODFLOW_LLM_API_KEY"


class GenerationSettings:
    """Typed accessors for the ``generation`` block of the app configuration.

    Every property coerces its raw YAML value and falls back to a default, so
    callers never have to guard against missing or malformed keys.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def base_url(self) -> str:
        return str(self.data.get("base_url") or DEFAULT_BASE_URL)

    @property
    def model_name(self) -> str:
        return str(self.data.get("model_name") or DEFAULT_MODEL_NAME)

    @property
    def api_key(self) -> str:
        # Local OpenAI-compatible servers accept any key; the SDK still wants one.
        return os.getenv(API_KEY_ENV_VAR) or str(self.data.get("api_key") or "not-needed")

    @property
    def temperature(self) -> float:
        return float(self.data.get("temperature", 0.3))

    @property
    def max_tokens(self) -> int:
        return int(self.data.get("max_tokens", 2048))

    @property
    def top_p(self) -> float:
        return float(self.data.get("top_p", 0.9))

    @property
    def timeout_seconds(self) -> float:
        return float(self.data.get("timeout_seconds", 60.0))

    @property
    def retry_attempts(self) -> int:
        return max(1, int(self.data.get("retry_attempts", 3)))

    @property
    def retry_base_delay(self) -> float:
        return max(0.0, float(self.data.get("retry_base_delay", 1.0)))

    @property
    def use_fallback(self) -> bool:
        return bool(self.data.get("use_fallback", True))

    @property
    def repair_json(self) -> bool:
        return bool(self.data.get("repair_json", True))
