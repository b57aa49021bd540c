"""
Configuration for exception_helper

Settings are plain dataclasses loaded from environment variables. A single
global instance is created lazily and can be reloaded or replaced in tests.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import os


TRUTHY_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable"""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY_VALUES


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Load logging config from environment variables"""
        return cls(
            level=os.getenv("EXCEPTION_HELPER_LOG_LEVEL", "INFO").upper(),
            structured=os.getenv("EXCEPTION_HELPER_LOG_FORMAT", "text").lower() == "json"
        )


@dataclass
class ExceptionHelperConfig:
    """Main configuration"""
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Suppresses every retry sleep. Meant for test and CI environments only.
    disable_retry_sleep: bool = False

    @classmethod
    def load(cls) -> 'ExceptionHelperConfig':
        """Load configuration from the environment"""
        return cls(
            logging=LoggingConfig.from_env(),
            disable_retry_sleep=_env_flag("EXCEPTION_HELPER_DISABLE_RETRY_SLEEP")
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not isinstance(logging.getLevelName(self.logging.level), int):
            errors.append(f"Unknown log level '{self.logging.level}'")

        return errors


# Global configuration instance
_config: Optional[ExceptionHelperConfig] = None


def get_config() -> ExceptionHelperConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = ExceptionHelperConfig.load()

        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> ExceptionHelperConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()


def set_config(config: Optional[ExceptionHelperConfig]) -> None:
    """Install an explicit configuration instance (None reloads lazily)"""
    global _config
    _config = config
