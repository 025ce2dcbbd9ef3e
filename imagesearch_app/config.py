"""
================================================================================
Image Search Aggregator - Configuration
================================================================================
One explicit configuration object, built from the environment (and a .env
file via python-dotenv) and handed to create_app(). Nothing else in the
package reads os.environ directly.
================================================================================
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


DEFAULT_ENCRYPTION_KEY = "default-key-change-in-production"

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class AppConfig:
    """Runtime configuration for the aggregator."""

    # Provider API keys (empty = adapter reports "not configured")
    pexels_key: str = ""
    pixabay_key: str = ""
    unsplash_access_key: str = ""

    # Opaque token codec secret
    encryption_key: str = DEFAULT_ENCRYPTION_KEY

    # Server
    env: str = "production"
    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False

    # Search limits
    default_limit: int = 100
    max_limit: int = 500

    # Rate limiting
    disable_rate_limiting: bool = False
    ratelimit_storage_uri: str = "memory://"

    # Rotating log directory
    log_dir: str = field(default_factory=lambda: os.path.join(BASE_DIR, "instance"))

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def uses_default_encryption_key(self) -> bool:
        return self.encryption_key == DEFAULT_ENCRYPTION_KEY

    def api_key_status(self) -> dict:
        """Which provider keys are set, for /health."""
        keys = {
            "pexels": self.pexels_key,
            "pixabay": self.pixabay_key,
            "unsplash": self.unsplash_access_key,
        }
        return {
            "configured": [name for name, value in keys.items() if value],
            "missing": [name for name, value in keys.items() if not value],
        }

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "AppConfig":
        """Build a config from environment variables."""
        if load_dotenv_file:
            load_dotenv()

        return cls(
            pexels_key=os.environ.get("PEXELS_KEY", ""),
            pixabay_key=os.environ.get("PIXABAY_KEY", ""),
            unsplash_access_key=os.environ.get("UNSPLASH_ACCESS_KEY", ""),
            encryption_key=os.environ.get("IMAGE_ENCRYPTION_KEY") or DEFAULT_ENCRYPTION_KEY,
            env=os.environ.get("FLASK_ENV", "production"),
            host=os.environ.get("FLASK_HOST", "127.0.0.1"),
            port=_env_int("FLASK_PORT", 3001),
            debug=_env_bool("FLASK_DEBUG"),
            default_limit=_env_int("SEARCH_DEFAULT_LIMIT", 100),
            max_limit=_env_int("SEARCH_MAX_LIMIT", 500),
            disable_rate_limiting=_env_bool("DISABLE_RATE_LIMITING"),
            ratelimit_storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
            log_dir=os.environ.get("LOG_DIR") or os.path.join(BASE_DIR, "instance"),
        )
