from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict
import yaml

from houston.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_BACKEND_URL = "http://localhost:3001"


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes typed
    properties for the backend connection, the rule fetch retry policy, the
    REST control plane and the moderation engine tunables. Secrets (the shared
    API key) are only ever read from the environment.
    Uses fcntl file locks for safe concurrent access across processes.
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
            logger.error("[APP CONFIGURATION] Config file %s does not contain a mapping.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    def _number(self, section: str, key: str, default: float) -> float:
        value = self._section(section).get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid value %r for %s.%s; using %s", value, section, key, default)
            return float(default)

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
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Backend
    # --------------------------
    @property
    def backend_url(self) -> str:
        """Base URL of the backend API, without a trailing slash.

        ``BACKEND_API_URL`` in the environment wins over ``backend.url``.
        """
        value = os.getenv("BACKEND_API_URL") or self._section("backend").get("url") or DEFAULT_BACKEND_URL
        return str(value).rstrip("/")

    @property
    def internal_api_key(self) -> str:
        """Pre-shared key for both inbound API calls and outbound backend calls."""
        return os.getenv("INTERNAL_API_KEY", "")

    @property
    def rules_fetch_max_retries(self) -> int:
        return max(1, int(self._number("rules_fetch", "max_retries", 3)))

    @property
    def rules_fetch_delay_seconds(self) -> float:
        return self._number("rules_fetch", "delay_seconds", 2.0)

    @property
    def rules_fetch_timeout_seconds(self) -> float:
        return self._number("rules_fetch", "timeout_seconds", 5.0)

    @property
    def backend_event_timeout_seconds(self) -> float:
        """Request timeout used when forwarding ban/timeout events."""
        return self._number("backend", "event_timeout_seconds", 10.0)

    # --------------------------
    # REST control plane
    # --------------------------
    @property
    def api_host(self) -> str:
        return str(self._section("api").get("host") or "0.0.0.0")

    @property
    def api_port(self) -> int:
        env_port = os.getenv("API_PORT")
        if env_port:
            try:
                return int(env_port)
            except ValueError:
                logger.warning("[APP CONFIGURATION] Invalid API_PORT %r; falling back to config", env_port)
        return int(self._number("api", "port", 3000))

    # --------------------------
    # Moderation engine
    # --------------------------
    @property
    def report_error_history(self) -> int:
        """Number of recent reporting failures kept for the debug endpoint."""
        return max(1, int(self._number("moderation", "report_error_history", 20)))

    @property
    def spam_sweep_probability(self) -> float:
        return min(1.0, max(0.0, self._number("moderation", "spam_sweep_probability", 0.01)))

    @property
    def spam_sweep_ceiling_seconds(self) -> float:
        return self._number("moderation", "spam_sweep_ceiling_seconds", 60.0)


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
