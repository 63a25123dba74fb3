from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from attachguard.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/app.db"
DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_NOTICE_COLOR = 0xFF4444
DEFAULT_OPENER_COG_NAME = "TempVC"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the database, cache and attachment blocker sections.
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
            logger.warning("[APP CONFIGURATION] Config %s is not a mapping; using defaults.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns an empty dict when the file is missing or malformed.
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
    def database_path(self) -> Path:
        """Path of the SQLite database holding blocker configuration."""
        value = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()

    @property
    def redis_url(self) -> str:
        """Redis URL for the config cache. Empty means use the in-process cache."""
        return str(self._section("cache").get("redis_url") or "")

    @property
    def cache_ttl_seconds(self) -> int:
        """Expiry for cached configuration records. Default is 300 seconds."""
        value = self._section("cache").get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return DEFAULT_CACHE_TTL_SECONDS

    @property
    def dm_notifications(self) -> bool:
        """Whether blocked users receive a DM explaining the removal."""
        return bool(self._section("attachment_blocker").get("dm_notifications", True))

    @property
    def notice_color(self) -> int:
        """Embed color used for the DM notice."""
        value = self._section("attachment_blocker").get("notice_color", DEFAULT_NOTICE_COLOR)
        try:
            # Accept "0xff4444" strings as well as YAML integers
            return int(value, 0) if isinstance(value, str) else int(value)
        except (TypeError, ValueError):
            return DEFAULT_NOTICE_COLOR

    @property
    def opener_cog_name(self) -> str:
        """Name of the cog that maps temporary channels to their opener."""
        return str(self._section("attachment_blocker").get("opener_cog_name") or DEFAULT_OPENER_COG_NAME)


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
