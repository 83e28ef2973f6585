"""
Configuration Management for StarORM

🔧 Unified Configuration System:
Dataclass based settings for the pieces of the engine that need tuning:
password hashing, field encryption, message locale, cache lifetimes and
logging. A single process-wide configuration is active at a time and can be
swapped or reset, which is what the test suite does between tests.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from enum import Enum
import os


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class ValidationConfig:
    """Validation rule configuration"""
    password_iterations: int = 260000
    password_min_length: int = 8
    encryption_key: Optional[str] = None
    locale: str = "en"
    locale_data_dir: Optional[str] = None


@dataclass
class CacheConfig:
    """Model cache configuration"""
    default_ttl: int = 86400  # 1 day
    namespace: str = "models"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None


@dataclass
class ORMConfig:
    """
    Complete engine configuration.

    Aggregates all configuration sections.
    """
    environment: Environment = Environment.DEVELOPMENT
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, env: Environment) -> 'ORMConfig':
        """Create configuration for specific environment"""
        config = cls(environment=env)

        if env == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif env == Environment.TESTING:
            # hashing cost dominates test run time otherwise
            config.validation.password_iterations = 1000
            config.cache.default_ttl = 60
            config.logging.level = "WARNING"

        elif env == Environment.PRODUCTION:
            config.logging.level = "WARNING"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ORMConfig':
        """Create configuration from dictionary"""
        env_name = config_dict.get("environment", Environment.DEVELOPMENT.value)
        config = cls.for_environment(Environment(env_name))

        sections = {
            "validation": config.validation,
            "cache": config.cache,
            "logging": config.logging,
        }
        for section_name, section in sections.items():
            for key, value in config_dict.get(section_name, {}).items():
                if not hasattr(section, key):
                    raise ValueError(f"Unknown {section_name} setting: {key}")
                setattr(section, key, value)

        return config

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'ORMConfig':
        """
        Create configuration from STARORM_* environment variables.

        Recognised variables: STARORM_ENV, STARORM_LOG_LEVEL,
        STARORM_ENCRYPTION_KEY, STARORM_LOCALE, STARORM_CACHE_TTL and
        STARORM_PASSWORD_ITERATIONS.
        """
        environ = os.environ if environ is None else environ
        config = cls.for_environment(Environment(environ.get("STARORM_ENV", "development")))

        if "STARORM_LOG_LEVEL" in environ:
            config.logging.level = environ["STARORM_LOG_LEVEL"].upper()
        if "STARORM_ENCRYPTION_KEY" in environ:
            config.validation.encryption_key = environ["STARORM_ENCRYPTION_KEY"]
        if "STARORM_LOCALE" in environ:
            config.validation.locale = environ["STARORM_LOCALE"]
        if "STARORM_CACHE_TTL" in environ:
            config.cache.default_ttl = int(environ["STARORM_CACHE_TTL"])
        if "STARORM_PASSWORD_ITERATIONS" in environ:
            config.validation.password_iterations = int(environ["STARORM_PASSWORD_ITERATIONS"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["environment"] = self.environment.value
        return data


_config: Optional[ORMConfig] = None


def get_config() -> ORMConfig:
    """Return the active configuration, creating the default one on first use"""
    global _config
    if _config is None:
        _config = ORMConfig()
    return _config


def set_config(config: ORMConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    global _config
    _config = None


__all__ = [
    'Environment',
    'ValidationConfig',
    'CacheConfig',
    'LoggingConfig',
    'ORMConfig',
    'get_config',
    'set_config',
    'reset_config',
]
