"""Site configuration loading for Folio.

The configuration store is a single ``_config.yml`` document at the project
root, layered over ``DEFAULT_CONFIG`` and then over command-line overrides.
It is loaded once per build and treated as read-only afterwards.

Key functions:
- load_config: Load and validate ``_config.yml``.
- load_data: Load ``_data`` files exposed to templates as ``site.data``.
- enabled_plugins: Split the plugin list into known and unknown names.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAMES = ("_config.yml", "_config.yaml")

KNOWN_PLUGINS = (
    "jekyll-paginate",
    "jekyll-feed",
    "jekyll-sitemap",
    "jekyll-titles-from-headings",
)

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "",
    "description": "",
    "url": "",
    "baseurl": "",
    "permalink": "date",
    "paginate": None,
    "paginate_path": "/page:num/",
    "plugins": [],
    "defaults": [],
    "include": [],
    "exclude": [
        "Gemfile",
        "Gemfile.lock",
        "node_modules",
        "vendor",
        "README.md",
        "LICENSE",
    ],
    "destination": "_site",
    "excerpt_separator": "\n\n",
    "show_excerpts": False,
    "titles_from_headings": {"enabled": True, "strip_title": False},
    "future": False,
    "show_drafts": False,
    "unpublished": False,
    "port": 4000,
    "host": "127.0.0.1",
    "livereload_port": None,
    "feed": {"path": "feed.xml", "posts_limit": 10},
}

_LIST_KEYS = ("plugins", "include", "exclude", "defaults")


def find_config_file(project_root: Path) -> Path | None:
    """Return the configuration file of a project, if there is one."""
    for name in CONFIG_FILENAMES:
        candidate = project_root / name
        if candidate.exists():
            return candidate
    return None


def load_config(
    project_root: Path, overrides: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Load site configuration from ``_config.yml``.

    Args:
        project_root: Root directory of the project.
        overrides: Values that win over the file (command-line flags).
            ``None`` values are ignored.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = find_config_file(project_root)
    source = config_path or project_root / CONFIG_FILENAMES[0]
    if config_path is not None:
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except (yaml.YAMLError, UnicodeDecodeError) as exc:
                raise ConfigError(
                    config_path, f"Invalid YAML: {exc}", exc
                ) from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(config_path, "Top-level value must be a mapping")
        _merge_nested(config, loaded)
    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    _validate(config, source)
    return config


def _merge_nested(config: dict[str, Any], loaded: dict[str, Any]) -> None:
    """Overlay loaded values, merging one level into default mappings."""
    for key, value in loaded.items():
        current = config.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged = dict(current)
            merged.update(value)
            config[key] = merged
        else:
            config[key] = value


def _validate(config: dict[str, Any], source: Path) -> None:
    for key in _LIST_KEYS:
        value = config.get(key)
        if value is None:
            config[key] = []
        elif not isinstance(value, list):
            raise ConfigError(source, f"'{key}' must be a list")

    paginate = config.get("paginate")
    if paginate is not None and (
        isinstance(paginate, bool) or not isinstance(paginate, int) or paginate < 1
    ):
        raise ConfigError(source, "'paginate' must be a positive integer")

    paginate_path = str(config.get("paginate_path") or "")
    if config.get("paginate") and ":num" not in paginate_path:
        raise ConfigError(source, "'paginate_path' must contain ':num'")

    titles = config.get("titles_from_headings")
    if isinstance(titles, bool):
        config["titles_from_headings"] = {"enabled": titles, "strip_title": False}
    elif not isinstance(titles, dict):
        raise ConfigError(source, "'titles_from_headings' must be a mapping")

    if not isinstance(config.get("feed"), dict):
        raise ConfigError(source, "'feed' must be a mapping")


def enabled_plugins(config: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Split the configured plugins into known and unknown names.

    Returns:
        Tuple of (known plugin names, unknown plugin names), both in
        declaration order.
    """
    known: list[str] = []
    unknown: list[str] = []
    for name in config.get("plugins", []):
        name = str(name)
        if name in KNOWN_PLUGINS:
            known.append(name)
        else:
            unknown.append(name)
    return known, unknown


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML and JSON files in the ``_data`` directory.

    Each file is exposed under its stem, so ``_data/navigation.yml`` becomes
    ``site.data.navigation``.

    Raises:
        ConfigError: If a data file cannot be parsed.
    """
    data_dir = project_root / "_data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.iterdir()):
        suffix = path.suffix.lower()
        if suffix not in (".yml", ".yaml", ".json"):
            continue
        with open(path, encoding="utf-8") as f:
            try:
                if suffix == ".json":
                    payload = json.load(f)
                else:
                    payload = yaml.safe_load(f)
            except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ConfigError(path, f"Invalid data file: {exc}", exc) from exc
        data[path.stem] = payload
    return data
