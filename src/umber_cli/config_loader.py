"""
Config file discovery and loading.

Config files are YAML; the flat ``config.json`` of early releases parses
as YAML too. On top of plain YAML:

- ``!include other.yml`` splices in another file, resolved relative to
  the including file.
- ``${VAR}`` and ``${VAR:-default}`` inside any string are replaced from
  the environment once all files are merged.

Usage:
    from umber_cli.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "UMBER_CONFIG"

# Relative to the working directory, highest precedence first.
_PROJECT_FILES = (
    Path(".umber", "config.yml"),
    Path(".umber", "config.yaml"),
    Path("config.json"),
)
_GLOBAL_FILE = Path(".config", "umber", "config.yml")

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def expand_env(text: str) -> str:
    """Substitute ``${VAR}`` and ``${VAR:-default}`` references in *text*.

    An unset or empty variable yields its default, or ``""`` without one.
    """

    def lookup(match: re.Match) -> str:
        return os.environ.get(match["name"]) or match["default"] or ""

    return _ENV_REF.sub(lookup, text)


def expand_env_tree(value: Any) -> Any:
    """Apply ``expand_env`` to every string in nested dicts and lists."""
    if isinstance(value, str):
        return expand_env(value)
    if isinstance(value, dict):
        return {key: expand_env_tree(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_tree(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with ``!include``.

    Each instance knows the chain of files that led to it, so an include
    cycle is reported instead of recursing. The tag is registered on this
    subclass only; ``yaml.safe_load`` still rejects it.
    """

    def __init__(self, stream: Any, chain: tuple[Path, ...]) -> None:
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.chain[-1].parent / target
        target = target.resolve()

        if target in self.chain:
            cycle = " -> ".join(str(p) for p in (*self.chain, target))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} (referenced from {self.chain[-1]})"
            )
        return load_config_file(target, _chain=self.chain)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def load_config_file(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    """Parse one config file, following its ``!include`` directives.

    Raises:
        OSError: If a file cannot be read
        ValueError: On an include cycle
        yaml.YAMLError: On malformed YAML
    """
    path = Path(path).resolve()
    with path.open(encoding="utf-8") as fh:
        loader = ConfigLoader(fh, (*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first.

    1. the file named by ``UMBER_CONFIG``
    2. ``.umber/config.yml``, ``.umber/config.yaml``, then ``config.json``
       in the working directory
    3. ``~/.config/umber/config.yml``
    """
    candidates: list[Path] = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    cwd = Path.cwd()
    candidates.extend(cwd / relative for relative in _PROJECT_FILES)
    candidates.append(Path.home() / _GLOBAL_FILE)
    return [p for p in candidates if p.is_file()]


_STARTER_CONFIG = """\
# umber-cli configuration
#
# Connection settings can also be set via environment variables:
#   NODEBB_URL, NODEBB_API_TOKEN, NODEBB_INSECURE
#
# nodebb:
#   url: https://forum.example.com
#   api_token: ${NODEBB_API_TOKEN}
#   insecure: false
#
# importer:
#   target_repo_url: https://github.com/owner/repo
#   ref: master
#   ignored_paths:
#     - .github
#     - "*.png"
#   master_category_name: Sources
#   importer_uid: 1
#   generate_toc: true
#   toc_title: Table of Contents
#   toc_header_content: "# Table of Contents"
#   chunk_max_length: 32768
#   reply_delay: 1.0
#   chunked_update_policy: skip
#   max_tags_per_topic: 5
#
# logging:
#   level: INFO
#   file: null
#   format: text
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to write the starter file; defaults to
            ``.umber/config.yml`` in the working directory.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    path = target or Path.cwd() / _PROJECT_FILES[0]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one dict.

    Lower-precedence files load first and a later file replaces whole
    top-level sections. Environment references are expanded after the
    merge. Returns ``{}`` when no file exists.

    Raises:
        ConfigurationError: If a file cannot be read or parsed.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Loading config: %s", path)
        try:
            data = load_config_file(path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to load config file %s: %s", path, exc)
            raise ConfigurationError(
                f"Failed to load config file {path}: {exc}"
            ) from exc

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    return expand_env_tree(merged)
