"""Configuration management and validation service."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://cardano-mainnet.blockfrost.io/api/v0"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PROJECT_ID_ENV = "BLOCKFROST_PROJECT_ID"
CONFIG_PATH_ENV = "POOLMAP_CONFIG"


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


# Configuration schema definition
CONFIG_SCHEMA = {
    "server": {
        "type": "dict",
        "required": False,
        "properties": {
            "host": {"type": "str", "required": False},
            "port": {"type": "int", "required": False, "min": 1, "max": 65535},
            "cors_origins": {"type": "list", "required": False},
        }
    },
    "blockfrost": {
        "type": "dict",
        "required": False,
        "properties": {
            "base_url": {"type": "str", "required": False},
            "project_id": {"type": "str", "required": False},
            "retry_count": {"type": "int", "required": False, "min": 1},
            "retry_delay_seconds": {"type": "float", "required": False, "min": 0},
            "rate_limit_delay_seconds": {"type": "float", "required": False, "min": 0},
        }
    },
    "ingestion": {
        "type": "dict",
        "required": False,
        "properties": {
            "batch_size": {"type": "int", "required": False, "min": 1},
            "batch_delay_seconds": {"type": "float", "required": False, "min": 0},
            "max_pages": {"type": "int", "required": False, "min": 1},
        }
    },
    "cache": {
        "type": "dict",
        "required": False,
        "properties": {
            "directory": {"type": "str", "required": False},
        }
    },
    "poller": {
        "type": "dict",
        "required": False,
        "properties": {
            "enabled": {"type": "bool", "required": False},
            "interval_seconds": {"type": "float", "required": False, "min": 1},
            "history_size": {"type": "int", "required": False, "min": 1},
        }
    },
    "logging": {
        "type": "dict",
        "required": False,
        "properties": {
            "level": {"type": "str", "required": False, "options": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            "format": {"type": "str", "required": False},
        }
    },
}


@dataclass
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"])


@dataclass
class BlockfrostSettings:
    """Connection settings for the upstream data provider."""
    base_url: str = DEFAULT_BASE_URL
    project_id: str = ""
    retry_count: int = 3
    retry_delay_seconds: float = 1.0  # multiplied by the attempt number
    rate_limit_delay_seconds: float = 2.0  # multiplied by the attempt number


@dataclass
class IngestionSettings:
    batch_size: int = 50
    batch_delay_seconds: float = 1.0
    max_pages: int = 500


@dataclass
class CacheSettings:
    directory: str = "cache"  # relative to the working directory


@dataclass
class PollerSettings:
    enabled: bool = True
    interval_seconds: float = 15.0
    history_size: int = 3


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


@dataclass
class Settings:
    """Typed view over a validated configuration dictionary."""
    server: ServerSettings = field(default_factory=ServerSettings)
    blockfrost: BlockfrostSettings = field(default_factory=BlockfrostSettings)
    ingestion: IngestionSettings = field(default_factory=IngestionSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    poller: PollerSettings = field(default_factory=PollerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "Settings":
        """Build settings from a validated config dictionary.

        Sections and keys that are absent keep their defaults.
        """
        return cls(
            server=ServerSettings(**config.get("server", {})),
            blockfrost=BlockfrostSettings(**config.get("blockfrost", {})),
            ingestion=IngestionSettings(**config.get("ingestion", {})),
            cache=CacheSettings(**config.get("cache", {})),
            poller=PollerSettings(**config.get("poller", {})),
            logging=LoggingSettings(**config.get("logging", {})),
        )

    def require_credential(self) -> str:
        """Return the upstream project id.

        Raises:
            ConfigValidationException: If no project id is configured.
        """
        if not self.blockfrost.project_id:
            raise ConfigValidationException([ConfigValidationError(
                path="blockfrost.project_id",
                message=f"Required field missing (set it in the config file or via {PROJECT_ID_ENV})"
            )])
        return self.blockfrost.project_id


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config service.

        Args:
            config_path: Path to config file. If None, uses POOLMAP_CONFIG or
                the default location.
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_PATH_ENV)
        if config_path is None:
            # Default config path relative to backend directory
            backend_dir = Path(__file__).parent.parent.parent
            config_path = str(backend_dir / "config.yaml")

        self.config_path = config_path
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Load and validate the configuration file.

        Returns:
            Validated configuration dictionary.

        Raises:
            ConfigValidationException: If validation fails.
        """
        errors: List[ConfigValidationError] = []

        # Check if file exists
        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found at {self.config_path}, using defaults")
            self._config = {}
            return self._config

        # Load YAML
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            errors.append(ConfigValidationError(
                path="",
                message=f"Invalid YAML syntax: {str(e)}"
            ))
            raise ConfigValidationException(errors)

        if config is None:
            config = {}

        if not isinstance(config, dict):
            errors.append(ConfigValidationError(
                path="",
                message=f"Config must be a dictionary, got {type(config).__name__}"
            ))
            raise ConfigValidationException(errors)

        # Validate against schema
        errors.extend(self._validate_dict(config, CONFIG_SCHEMA, ""))

        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def load_settings(self) -> Settings:
        """Load, validate and convert the configuration to typed settings.

        The BLOCKFROST_PROJECT_ID environment variable overrides the
        configured project id.
        """
        settings = Settings.from_dict(self.load_and_validate())

        project_id = os.environ.get(PROJECT_ID_ENV)
        if project_id:
            settings.blockfrost.project_id = project_id

        return settings

    def _validate_dict(
        self,
        data: Dict[str, Any],
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Validate a dictionary against schema.

        Args:
            data: Data to validate
            schema: Schema to validate against
            path: Current path for error messages

        Returns:
            List of validation errors
        """
        errors = []

        # Check for unknown keys
        for key in data:
            if key not in schema:
                errors.append(ConfigValidationError(
                    path=f"{path}.{key}" if path else key,
                    message=f"Unknown configuration key '{key}'"
                ))

        # Validate each schema property
        for key, prop_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key not in data:
                if prop_schema.get("required", False):
                    errors.append(ConfigValidationError(
                        path=current_path,
                        message="Required field missing"
                    ))
                continue

            value = data[key]
            errors.extend(self._validate_value(value, prop_schema, current_path))

        return errors

    def _validate_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Validate a single value against schema."""
        errors = []
        expected_type = schema.get("type")

        # Type validation
        type_map = {
            "str": str,
            "int": int,
            "float": (int, float),
            "bool": bool,
            "list": list,
            "dict": dict,
        }

        if expected_type == "dict":
            if not isinstance(value, dict):
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Expected dict, got {type(value).__name__}"
                ))
                return errors

            # Validate nested properties
            if "properties" in schema:
                errors.extend(self._validate_dict(value, schema["properties"], path))

        elif expected_type in type_map:
            expected = type_map[expected_type]
            # bool is an int subclass; reject it for numeric fields
            if not isinstance(value, expected) or (
                expected_type in ("int", "float") and isinstance(value, bool)
            ):
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Expected {expected_type}, got {type(value).__name__}"
                ))
                return errors

            # Numeric range validation
            if expected_type in ("int", "float"):
                if "min" in schema and value < schema["min"]:
                    errors.append(ConfigValidationError(
                        path=path,
                        message=f"Value {value} is below minimum {schema['min']}"
                    ))
                if "max" in schema and value > schema["max"]:
                    errors.append(ConfigValidationError(
                        path=path,
                        message=f"Value {value} is above maximum {schema['max']}"
                    ))

            # Options validation
            if "options" in schema and value not in schema["options"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value '{value}' not in allowed options: {schema['options']}"
                ))

        return errors


def configure_logging(settings: LoggingSettings) -> None:
    """Configure root logging from the logging section."""
    logging.basicConfig(
        level=getattr(logging, settings.level, logging.INFO),
        format=settings.format,
    )


# Global config service instance
config_service = ConfigService()
