"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./wmsync.yaml (working directory)
3. ~/.wmsync/config.yaml (user home)

Environment variables override YAML: WMSYNC_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal, get_origin

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class ApiSettings(BaseModel):
    """Warehouse backend connection."""

    base_url: str = "http://127.0.0.1:8080"
    token: str = ""
    timeout: float = 30.0
    org_id: str | None = None
    default_org_id: str | None = None


class ConnectivitySettings(BaseModel):
    """Reachability check used to decide online/offline."""

    check_url: str = "/health"
    timeout: float = 5.0
    poll_interval: float = 10.0

    @field_validator("timeout", "poll_interval")
    @classmethod
    def positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value


class RefreshSettings(BaseModel):
    """Refresh pass behaviour. An empty list means every known API."""

    responsibilities: list[str] = []
    max_retry_attempts: int = 3
    eta_window: int | None = None


class SyncSettings(BaseModel):
    """Transaction sync behaviour."""

    responsibilities: list[str] = ["LOAD_TO_DOCK"]
    load_to_dock_endpoint: str = "EBS/23B/createLoadtoDockwms"


class StoreSettings(BaseModel):
    """Local pending-transaction database."""

    database_url: str = "sqlite:///./wmsync.db"
    echo: bool = False


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(levelname)s:%(name)s:%(message)s"

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class WmsyncConfig(BaseModel):
    """Top-level configuration for the wmsync CLI."""

    api: ApiSettings = ApiSettings()
    connectivity: ConnectivitySettings = ConnectivitySettings()
    refresh: RefreshSettings = RefreshSettings()
    sync: SyncSettings = SyncSettings()
    store: StoreSettings = StoreSettings()
    logging: LoggingSettings = LoggingSettings()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations."""
    candidates = [
        Path.cwd() / "wmsync.yaml",
        Path.cwd() / "wmsync.yml",
        Path.home() / ".wmsync" / "config.yaml",
        Path.home() / ".wmsync" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(section: str, field: str, value: str) -> Any:
    """Split list fields on commas; Pydantic parses the remaining scalars."""
    section_model = WmsyncConfig.model_fields[section].annotation
    field_info = getattr(section_model, "model_fields", {}).get(field)
    if field_info is not None and get_origin(field_info.annotation) is list:
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply WMSYNC_<SECTION>_<KEY> env var overrides to config data.

    For example, ``WMSYNC_REFRESH_MAX_RETRY_ATTEMPTS`` maps to section
    ``refresh``, field ``max_retry_attempts``. List fields take a
    comma-separated value.
    """
    prefix = "WMSYNC_"
    # Longest first so a section name never shadows a longer one.
    known_sections = sorted(WmsyncConfig.model_fields.keys(), key=len, reverse=True)
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if not isinstance(data.get(matched_section), dict):
            data[matched_section] = {}
        data[matched_section][matched_field] = _coerce(
            matched_section, matched_field, value
        )
    return data


def load_config(config_path: str | None = None) -> WmsyncConfig | None:
    """Load wmsync configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.wmsync/).

    Returns:
        Parsed and validated WmsyncConfig, or None if no config found.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()
        if path is None:
            return None

    logger.info("Loading config from %s", path)

    with open(path) as f:
        raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return WmsyncConfig(**data)


def load_config_or_default(config_path: str | None = None) -> WmsyncConfig:
    """Like load_config, but falls back to defaults plus env overrides."""
    cfg = load_config(config_path)
    if cfg is not None:
        return cfg
    return WmsyncConfig(**_apply_env_overrides({}))
