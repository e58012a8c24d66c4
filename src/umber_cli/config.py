"""Forum connection configuration.

Reads NodeBB connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    NODEBB_URL: Forum base URL (required)
    NODEBB_API_TOKEN: API bearer token (required)
    NODEBB_INSECURE: Skip SSL verification (optional, default: false)
    NODEBB_TIMEOUT: Read timeout in seconds (optional, default: 60)
    UMBER_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
_TRUTHY = ("true", "1", "yes", "on")


@dataclass
class Config:
    nodebb_url: str
    api_token: str
    insecure: bool = False
    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT


def validate_config(config: Config) -> None:
    """Validate configuration values and raise if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigurationError: If URL format is invalid or the token is empty.
    """
    config.nodebb_url = config.nodebb_url.strip()

    if not config.nodebb_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid NodeBB URL '{config.nodebb_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.nodebb_url)
    if not parsed.hostname:
        raise ConfigurationError(
            f"Invalid NodeBB URL '{config.nodebb_url}': URL must include a hostname"
        )

    config.nodebb_url = config.nodebb_url.rstrip("/")

    if not config.api_token.strip():
        raise ConfigurationError(
            "NodeBB API token cannot be empty. Set NODEBB_API_TOKEN environment variable."
        )

    if config.timeout <= 0:
        raise ConfigurationError(
            f"Invalid timeout {config.timeout}: must be a positive number of seconds"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _resolve_flag(cli_value: bool, env_key: str, fallback: object) -> bool:
    """A set CLI flag wins, then a set env var, then the YAML value."""
    if cli_value:
        return True
    raw = os.getenv(env_key)
    if raw is not None:
        return raw.lower() in _TRUTHY
    return bool(fallback)


def _resolve_timeout(fallback: object) -> float:
    raw = os.getenv("NODEBB_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT if fallback is None else float(fallback)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid NODEBB_TIMEOUT '{raw}': must be a number of seconds"
        ) from None


def load_config(
    url: str | None = None,
    api_token: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load connection configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override forum URL.
        api_token: Override API token.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``nodebb`` section.

    Returns:
        Validated Config instance.

    Raises:
        ConfigurationError: If the URL or token is missing after checking
            all sources, or a value is malformed.
    """
    fb = yaml_fallbacks or {}

    nodebb_url = url or os.getenv("NODEBB_URL") or fb.get("url")
    if not nodebb_url:
        raise ConfigurationError(
            "NodeBB URL not found. Set NODEBB_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    token = api_token or os.getenv("NODEBB_API_TOKEN") or fb.get("api_token")
    if not token:
        raise ConfigurationError(
            "NodeBB API token not found. Set NODEBB_API_TOKEN environment variable, "
            "pass --token CLI argument, or add 'api_token' to config.yml."
        )

    config = Config(
        nodebb_url=nodebb_url.strip(),
        api_token=token.strip(),
        insecure=_resolve_flag(insecure, "NODEBB_INSECURE", fb.get("insecure")),
        debug=_resolve_flag(debug, "UMBER_DEBUG", fb.get("debug")),
        timeout=_resolve_timeout(fb.get("timeout")),
    )

    validate_config(config)

    return config
