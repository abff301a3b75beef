"""
Client configuration for meteodb.
"""

import os
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

DEFAULT_BASE_URL = "https://bulk.meteostat.net/v2"
DEFAULT_USER_AGENT = "meteodb-client/0.1.0"


def default_cache_dir() -> Path:
    """Return the platform-appropriate cache directory for meteodb files."""
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "meteodb" / "cache"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "meteodb"
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "meteodb"


@dataclass
class ClientConfig:
    """
    Settings shared by the cache manager, station directory and frequency clients.

    Args:
        cache_dir: Root directory for cached station and weather files
        base_url: Base URL of the bulk data provider
        timeout: HTTP timeout in seconds
        user_agent: User-Agent header sent with every request
        weather_max_age: Minimum age before a weather file whose requested
            period reaches past its fetch date is downloaded again
        default_max_distance_km: Search radius used by location lookups
    """

    cache_dir: Path = field(default_factory=default_cache_dir)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    weather_max_age: timedelta = timedelta(hours=24)
    default_max_distance_km: float = 50.0

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir).expanduser()
        self.base_url = self.base_url.rstrip("/")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.default_max_distance_km < 0:
            raise ValueError(
                "default_max_distance_km must not be negative, "
                f"got {self.default_max_distance_km}"
            )

    @classmethod
    def from_env(cls, cache_dir: Optional[Path] = None) -> "ClientConfig":
        """
        Build a configuration from METEODB_* environment variables.

        Recognised variables are METEODB_CACHE_DIR, METEODB_BASE_URL and
        METEODB_TIMEOUT. An explicit ``cache_dir`` argument wins over the
        environment.
        """
        kwargs = {}
        env_dir = os.environ.get("METEODB_CACHE_DIR")
        if cache_dir is not None:
            kwargs["cache_dir"] = Path(cache_dir)
        elif env_dir:
            kwargs["cache_dir"] = Path(env_dir)

        base_url = os.environ.get("METEODB_BASE_URL")
        if base_url:
            kwargs["base_url"] = base_url

        timeout = os.environ.get("METEODB_TIMEOUT")
        if timeout:
            try:
                kwargs["timeout"] = float(timeout)
            except ValueError as e:
                raise ValueError(f"Invalid METEODB_TIMEOUT value: {timeout!r}") from e

        return cls(**kwargs)
