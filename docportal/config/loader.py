"""YAML configuration loader: ingestion profiles and the notable-name catalog.

Configuration is loaded in layers (later layers override earlier):

  1. Built-in profiles (:data:`docportal.models.profile.BUILTIN_PROFILES`)
  2. ``config/config.yaml`` -- checked-in profile definitions/overrides
  3. ``.env`` file and environment variables (via :class:`Settings`)
  4. CLI flags (applied by the CLI on top of the returned profile)

The ``_deep_merge`` helper does recursive dict merging:
  base = {"profiles": {"ocr": {"dpi": 300}}}
  overrides = {"profiles": {"ocr": {"worker_count": 2}}}
  result = {"profiles": {"ocr": {"dpi": 300, "worker_count": 2}}}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from docportal.config.notable_names import DEFAULT_NOTABLE_NAMES
from docportal.config.settings import Settings
from docportal.models.profile import BUILTIN_PROFILES, IngestionProfile
from docportal.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def load_config(path: str | Path = "config/config.yaml") -> dict[str, Any]:
    """Load the YAML config file, returning ``{}`` when it does not exist."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return data


def settings_profile(settings: Settings) -> IngestionProfile:
    """Build the ``default`` profile from environment settings alone."""
    return IngestionProfile(
        name="default",
        ocr_enabled=settings.ocr_enabled,
        worker_count=settings.worker_count,
        dpi=settings.ocr_dpi,
        max_documents=settings.max_documents_per_run or None,
        embedding_batch_size=settings.embedding_batch_size,
    )


def load_profile(
    name: str | None,
    settings: Settings,
    config: dict[str, Any] | None = None,
) -> IngestionProfile:
    """Resolve the profile called *name*.

    ``None`` or ``"default"`` returns the settings-derived profile.  YAML
    entries under ``profiles.<name>`` override the built-in definition of
    the same name, or define a new profile outright.

    Raises
    ------
    ConfigurationError
        If *name* is unknown or the merged values fail validation.
    """
    if config is None:
        config = load_config(settings.config_path)

    yaml_profiles = config.get("profiles") or {}
    if name is None or name == "default":
        base = settings_profile(settings)
        overrides = yaml_profiles.get("default") or {}
    elif name in BUILTIN_PROFILES or name in yaml_profiles:
        base = BUILTIN_PROFILES.get(name, settings_profile(settings))
        overrides = yaml_profiles.get(name) or {}
    else:
        available = sorted({*BUILTIN_PROFILES, *yaml_profiles, "default"})
        raise ConfigurationError(
            f"Unknown ingestion profile {name!r}; available: {', '.join(available)}"
        )

    merged = base.model_dump()
    _deep_merge(merged, dict(overrides))
    merged["name"] = name or "default"
    try:
        return IngestionProfile(**merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid ingestion profile {name!r}: {exc}") from exc


def load_notable_names(path: str | Path | None = None) -> list[str]:
    """Load the notable-name catalog.

    With no *path*, returns the built-in catalog.  Otherwise reads either
    a YAML file (a list, or a mapping with a ``names`` list) or a plain
    text file with one name per line; blank lines and ``#`` comments are
    ignored.  Duplicates are dropped case-insensitively, keeping the first
    spelling.
    """
    if not path:
        return list(DEFAULT_NOTABLE_NAMES)

    names_path = Path(path)
    if not names_path.is_file():
        raise ConfigurationError(f"Notable names file not found: {names_path}")

    raw = names_path.read_text(encoding="utf-8")
    if names_path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(raw) or []
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {names_path}: {exc}") from exc
        if isinstance(data, dict):
            data = data.get("names") or []
        if not isinstance(data, list):
            raise ConfigurationError(f"{names_path} must contain a list of names")
        candidates = [str(item) for item in data]
    else:
        candidates = [line.split("#", 1)[0] for line in raw.splitlines()]

    names: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        name = candidate.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        names.append(name)

    logger.info("notable_names_loaded", path=str(names_path), count=len(names))
    return names


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
