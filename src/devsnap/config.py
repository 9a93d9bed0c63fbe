"""Configuration loading and validation for devsnap."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from croniter import croniter

from devsnap.errors import ConfigError, ConfigurationError
from devsnap.models import LogLevel, RetentionPolicy, ScheduleEntry, Tier
from devsnap.policy import parse_duration

__all__ = [
    "Configuration",
    "ConfigurationError",
    "HookConfig",
    "SubvolumeConfig",
    "TimeoutConfig",
]


@dataclass
class TimeoutConfig:
    """Per-operation timeouts in seconds."""

    create: float = 30
    delete: float = 60
    list: float = 30
    diff: float = 300
    restore: float = 600
    usage: float = 15
    hook: float = 10  # Whole hook invocation


@dataclass
class HookConfig:
    """VCS hook configuration."""

    subvolume: str | None = None  # None = hooks disabled
    skip_during_rebase: bool = True


@dataclass
class SubvolumeConfig:
    """A managed subvolume and its retention policy."""

    name: str
    snapper_config: str
    mount_point: str
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)


@dataclass
class Configuration:
    """Parsed and validated configuration from YAML file."""

    log_file_level: LogLevel = LogLevel.DEBUG
    log_cli_level: LogLevel = LogLevel.INFO
    sudo: bool = True
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    hooks: HookConfig = field(default_factory=HookConfig)
    subvolumes: dict[str, SubvolumeConfig] = field(default_factory=dict)
    schedule: list[ScheduleEntry] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: Path) -> Configuration:
        """Load and validate configuration from YAML file.

        Args:
            path: Path to config.yaml

        Returns:
            Validated Configuration instance

        Raises:
            ConfigurationError: If YAML is invalid or schema validation fails
        """
        try:
            with path.open() as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                [ConfigError(path=str(path), message=f"Configuration file not found: {path}")]
            ) from None
        except yaml.YAMLError as e:
            error_msg = str(e)
            # Extract line number if available (problem_mark exists on MarkedYAMLError)
            mark = getattr(e, "problem_mark", None)
            problem = getattr(e, "problem", None)
            if mark is not None and problem is not None:
                error_msg = f"YAML syntax error at line {mark.line + 1}, column {mark.column + 1}: {problem}"
            raise ConfigurationError([ConfigError(path=str(path), message=error_msg)]) from e

        # Handle empty file
        if data is None:
            data = {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Configuration:
        """Validate an already-parsed config mapping and build a Configuration.

        All problems are collected before raising, so the operator sees every
        mistake in one pass.

        Raises:
            ConfigurationError: If schema or semantic validation fails
        """
        errors: list[ConfigError] = []

        validator = jsonschema.Draft7Validator(_load_schema())
        for error in validator.iter_errors(data):
            path_parts = list(error.absolute_path)
            path_str = ".".join(str(p) for p in path_parts) if path_parts else "root"
            errors.append(ConfigError(path=path_str, message=error.message))

        if errors:
            raise ConfigurationError(errors)

        log_file_level = LogLevel[data.get("log_file_level", "DEBUG").upper()]
        log_cli_level = LogLevel[data.get("log_cli_level", "INFO").upper()]

        subvolumes: dict[str, SubvolumeConfig] = {}
        for name, sv_data in data["subvolumes"].items():
            retention_data = sv_data.get("retention", {})
            try:
                policy = _parse_retention(retention_data)
            except ValueError as e:
                errors.append(ConfigError(path=f"subvolumes.{name}.retention", message=str(e)))
                continue
            subvolumes[name] = SubvolumeConfig(
                name=name,
                snapper_config=sv_data["snapper_config"],
                mount_point=sv_data["mount_point"],
                retention=policy,
            )

        schedule: list[ScheduleEntry] = []
        for index, entry in enumerate(data.get("schedule", [])):
            if entry["subvolume"] not in data["subvolumes"]:
                errors.append(
                    ConfigError(
                        path=f"schedule.{index}.subvolume",
                        message=f"Unknown subvolume: {entry['subvolume']}",
                    )
                )
            if not croniter.is_valid(entry["cron"]):
                errors.append(
                    ConfigError(
                        path=f"schedule.{index}.cron",
                        message=f"Invalid cron expression: {entry['cron']}",
                    )
                )
            schedule.append(ScheduleEntry(subvolume=entry["subvolume"], tier=Tier(entry["tier"]), cron=entry["cron"]))

        hooks_data = data.get("hooks", {})
        hooks = HookConfig(
            subvolume=hooks_data.get("subvolume"),
            skip_during_rebase=hooks_data.get("skip_during_rebase", True),
        )
        if hooks.subvolume is not None and hooks.subvolume not in data["subvolumes"]:
            errors.append(ConfigError(path="hooks.subvolume", message=f"Unknown subvolume: {hooks.subvolume}"))

        if errors:
            raise ConfigurationError(errors)

        return cls(
            log_file_level=log_file_level,
            log_cli_level=log_cli_level,
            sudo=data.get("adapter", {}).get("sudo", True),
            timeouts=TimeoutConfig(**data.get("timeouts", {})),
            hooks=hooks,
            subvolumes=subvolumes,
            schedule=schedule,
        )

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default config file path."""
        return Path.home() / ".config" / "devsnap" / "config.yaml"

    def get_subvolume(self, name: str) -> SubvolumeConfig:
        """Return a configured subvolume.

        Raises:
            ConfigurationError: If the subvolume is not configured
        """
        try:
            return self.subvolumes[name]
        except KeyError:
            raise ConfigurationError(
                [ConfigError(path=f"subvolumes.{name}", message=f"Subvolume '{name}' is not configured")]
            ) from None


def _parse_retention(data: dict[str, Any]) -> RetentionPolicy:
    """Build a RetentionPolicy from its config mapping, applying defaults."""
    defaults = RetentionPolicy()
    limits = {Tier(tier): count for tier, count in data.get("limit", {}).items()}
    policy = RetentionPolicy(
        limits=limits,
        min_age=parse_duration(data.get("min_age", defaults.min_age)),
        number_limit=data.get("number_limit", defaults.number_limit),
        warn_threshold=data.get("warn_threshold", defaults.warn_threshold),
        critical_threshold=data.get("critical_threshold", defaults.critical_threshold),
    )
    if policy.warn_threshold >= policy.critical_threshold:
        raise ValueError(
            f"warn_threshold ({policy.warn_threshold}) must be lower than "
            f"critical_threshold ({policy.critical_threshold})"
        )
    return policy


def _load_schema() -> dict[str, Any]:
    """Load the config schema from package resources."""
    schema_path = Path(__file__).parent / "schemas" / "config-schema.yaml"
    with schema_path.open() as f:
        return yaml.safe_load(f)
