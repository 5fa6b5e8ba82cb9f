"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./flow-architect.yaml (working directory)
3. ~/.flow-architect/config.yaml (user home)

Environment variables override YAML: FLOW_ARCHITECT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from flow_architect.orchestrator.nl_engine.config import DEFAULT_MAX_TOKENS, get_model

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

ENV_PREFIX = "FLOW_ARCHITECT_"


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
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


class ClassifierConfig(BaseModel):
    """Intent classification service settings."""

    enabled: bool = True
    model: str = Field(default_factory=get_model)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    timeout_seconds: float = Field(default=15.0, gt=0)
    context_turns: int = Field(default=10, ge=0)


class DialogueConfig(BaseModel):
    """Dialogue policy.

    The confidence threshold is a tunable policy value, not a calibrated
    constant.
    """

    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    ask_optional_fields: bool = True


class CatalogConfig(BaseModel):
    """Connector catalog location. None uses the packaged catalog."""

    path: str | None = None


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error"] = "warning"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class FlowArchitectConfig(BaseModel):
    """Top-level configuration for flow-architect."""

    classifier: ClassifierConfig = ClassifierConfig()
    dialogue: DialogueConfig = DialogueConfig()
    catalog: CatalogConfig = CatalogConfig()
    logging: LoggingConfig = LoggingConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "flow-architect.yaml",
        Path.cwd() / "flow-architect.yml",
        Path.home() / ".flow-architect" / "config.yaml",
        Path.home() / ".flow-architect" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce_env_value(value: str) -> Any:
    """Coerce to int, float or bool, or keep as string."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply FLOW_ARCHITECT_<SECTION>_<KEY> env var overrides to config data.

    For example, ``FLOW_ARCHITECT_DIALOGUE_CONFIDENCE_THRESHOLD=0.7`` maps
    to section ``dialogue``, field ``confidence_threshold``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    # Known sections sorted longest-first so greedy prefix match works.
    known_sections = sorted(
        FlowArchitectConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()  # e.g. "classifier_timeout_seconds"
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
        data[matched_section][matched_field] = _coerce_env_value(value)
    return data


def load_config(config_path: str | None = None) -> FlowArchitectConfig:
    """Load flow-architect configuration from YAML with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.flow-architect/).

    Returns:
        Parsed and validated config. Defaults plus env overrides when no
        config file exists.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If a value is out of range or mistyped.
    """
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    # Resolve ${VAR} references
    data = _resolve_env_vars_recursive(raw_data)

    # Apply FLOW_ARCHITECT_ env var overrides
    data = _apply_env_overrides(data)

    return FlowArchitectConfig(**data)


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging once for the CLI process."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
    )
