"""Configuration management for orcaloop.

Settings come from environment variables (see ``OrcaloopConfig.from_environment``)
and are shared process-wide through ``get_config``.
"""

import os
from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() == "true"


@dataclass
class OrcaloopConfig:
    """Settings for document loading, condition evaluation and validation."""

    # Where workflow documents live and how long parsed ones are cached
    workflow_definitions_path: str = "./.orcaloop/workflows/"
    yaml_cache_ttl: int = 300  # seconds
    yaml_cache_size: int = 100

    # Compiled conditions kept by the shared evaluator
    expression_cache_size: int = 256

    # Report validation warnings as errors
    strict_validation: bool = False

    debug_mode: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "OrcaloopConfig":
        """Build a configuration from environment variables, falling back to defaults."""
        return cls(
            workflow_definitions_path=os.getenv("WORKFLOW_DEFINITIONS_PATH", cls.workflow_definitions_path),
            yaml_cache_ttl=_env_int("YAML_CACHE_TTL", cls.yaml_cache_ttl),
            yaml_cache_size=_env_int("YAML_CACHE_SIZE", cls.yaml_cache_size),
            expression_cache_size=_env_int("EXPRESSION_CACHE_SIZE", cls.expression_cache_size),
            strict_validation=_env_flag("STRICT_VALIDATION"),
            debug_mode=_env_flag("DEBUG_MODE"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).strip().upper(),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """Check every setting and return ``(is_valid, errors)``."""
        errors = [
            f"{name} must be positive"
            for name in ("yaml_cache_ttl", "yaml_cache_size", "expression_cache_size")
            if getattr(self, name) <= 0
        ]

        if not self.workflow_definitions_path:
            errors.append("workflow_definitions_path cannot be empty")

        if self.log_level not in LOG_LEVELS:
            errors.append(f"log_level must be one of {list(LOG_LEVELS)}")

        return not errors, errors

    def __post_init__(self):
        is_valid, errors = self.validate()
        if not is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(errors)}")


_config: OrcaloopConfig | None = None


def get_config() -> OrcaloopConfig:
    """Return the shared configuration, reading the environment on first use."""
    global _config
    if _config is None:
        _config = OrcaloopConfig.from_environment()
    return _config


def set_config(config: OrcaloopConfig) -> None:
    """Replace the shared configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the shared configuration so the next access re-reads the environment."""
    global _config
    _config = None
