from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from modflow.configuration.generation_settings import GenerationSettings
from modflow.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml``, exposes
    dictionary-like access helpers, and resolves generation-backend settings
    through :class:`GenerationSettings`. Reads take an fcntl shared lock so a
    concurrent writer never hands us a half-written file.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def generation_settings(self) -> GenerationSettings:
        """Return the generation backend settings wrapped in a typed helper."""
        return GenerationSettings(self._section("generation"))

    @property
    def system_prompt_template(self) -> str:
        """Return the configured system prompt template (or empty string).

        The ``<|CAPABILITIES_INJECT|>`` placeholder is replaced with the list
        of canonical actions when the prompt is built.
        """
        value = self._section("generation").get("system_prompt", "")
        return str(value or "")

    @property
    def command_prefix(self) -> str:
        return str(self._section("bot").get("prefix") or "modflow")

    @property
    def approval_timeout(self) -> float:
        """Seconds the requester has to confirm a plan flagged for approval."""
        return float(self._section("approval").get("timeout_seconds", 30.0))

    @property
    def auto_approve_admins(self) -> bool:
        return bool(self._section("approval").get("auto_approve_admins", False))

    @property
    def max_workflow_steps(self) -> int:
        return int(self._section("workflow").get("max_steps", 10))

    @property
    def workflow_history_limit(self) -> int:
        """Number of workflow records kept in memory before eviction."""
        return int(self._section("workflow").get("history_limit", 256))

    @property
    def composite_repeat_limit(self) -> int:
        return int(self._section("workflow").get("composite_repeat_limit", 10))

    @property
    def fallback_repeat_limit(self) -> int:
        return int(self._section("generation").get("fallback_repeat_limit", 5))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
