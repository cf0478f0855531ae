"""Configuration for tck-audit.

Settings are read from an optional YAML file and from environment variables
prefixed with TCK_AUDIT_. Environment variables take precedence over YAML
values.

Example:
    >>> settings = get_settings(Path("tck-audit.yaml"))
    >>> settings.not_implemented_group
    'not-implemented'
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

DEFAULT_AUDIT_FILE_NAME = "test-audit.xml"
DEFAULT_OUTPUT_DIR = "target"
DEFAULT_NOT_IMPLEMENTED_GROUP = "not-implemented"
DEFAULT_CONFIG_PATH = Path("tck-audit.yaml")
ENV_PREFIX = "TCK_AUDIT_"


class AuditSettings(BaseSettings):
    """Settings for an audit run.

    Environment Variables:
        TCK_AUDIT_AUDIT_FILE: Path of the audit document
        TCK_AUDIT_OUTPUT_DIR: Directory reports are written to
        TCK_AUDIT_NOT_IMPLEMENTED_GROUP: Test group meaning "not implemented"
        TCK_AUDIT_STRICT_PARSING: Treat per-section parse errors as fatal
        TCK_AUDIT_LOG_LEVEL: Minimum log level
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        frozen=True,
    )

    audit_file: Path = Field(
        default=Path(DEFAULT_AUDIT_FILE_NAME),
        description="Audit document (XML or YAML)",
    )
    output_dir: Path = Field(
        default=Path(DEFAULT_OUTPUT_DIR),
        description="Directory the report is written to",
    )
    not_implemented_group: str = Field(
        default=DEFAULT_NOT_IMPLEMENTED_GROUP,
        min_length=1,
        description="Test group tag marking a reference as not implemented",
    )
    strict_parsing: bool = Field(
        default=True,
        description="Escalate per-section parse errors to a fatal document error",
    )
    pass_threshold: float = Field(
        default=90.0,
        ge=0.0,
        le=100.0,
        description="Coverage percentage at or above which a section passes",
    )
    warn_threshold: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        description="Coverage percentage at or above which a section warns",
    )
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Emit logs as JSON")

    @model_validator(mode="after")
    def validate_thresholds(self) -> Self:
        """Validate that the warn threshold does not exceed the pass threshold."""
        if self.warn_threshold > self.pass_threshold:
            msg = (
                f"warn_threshold ({self.warn_threshold}) must not exceed "
                f"pass_threshold ({self.pass_threshold})"
            )
            raise ValueError(msg)
        return self

    def section_status(self, percentage: float | None) -> str:
        """Classify a coverage percentage against the thresholds.

        Args:
            percentage: Coverage percentage, or None when nothing is testable.

        Returns:
            "pass", "warn", "fail", or "not_applicable".
        """
        if percentage is None:
            return "not_applicable"
        if percentage >= self.pass_threshold:
            return "pass"
        if percentage >= self.warn_threshold:
            return "warn"
        return "fail"


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dictionary of configuration values, or empty dict if file doesn't exist.

    Raises:
        ValueError: If the file does not contain a YAML mapping.
    """
    if not config_path.exists():
        return {}

    import yaml

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration file {config_path} must contain a mapping"
        raise ValueError(msg)
    return data


def get_settings(config_path: Path | None = None, **overrides: Any) -> AuditSettings:
    """Load settings from environment and optionally a YAML file.

    Explicit overrides (typically CLI options) win over environment
    variables, which win over YAML values.

    Args:
        config_path: Optional YAML config path. Defaults to ./tck-audit.yaml.
        **overrides: Values that take precedence over every other source.
            None values are ignored.

    Returns:
        Validated AuditSettings instance.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    # Init kwargs beat the environment in pydantic-settings, so YAML values
    # for variables that are set in the environment are dropped here.
    yaml_config = {
        key: value
        for key, value in load_yaml_config(config_path).items()
        if f"{ENV_PREFIX}{key}".upper() not in os.environ
    }
    explicit = {k: v for k, v in overrides.items() if v is not None}
    return AuditSettings(**{**yaml_config, **explicit})


__all__ = [
    "DEFAULT_AUDIT_FILE_NAME",
    "DEFAULT_NOT_IMPLEMENTED_GROUP",
    "DEFAULT_OUTPUT_DIR",
    "AuditSettings",
    "get_settings",
    "load_yaml_config",
]
