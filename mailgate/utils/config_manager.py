"""Configuration manager for settings stored as JSON."""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_serializer,
    field_validator,
)

from .errors import (
    ConfigurationError,
    InvalidConfigError,
    MailgateError,
    MissingConfigError,
)
from .logging import get_logger, init_logging, log_call
from .paths import CONFIG_PATH

logger = get_logger(__name__)


class AccountConfig(BaseModel):
    """Pydantic model for the IMAP account."""

    imap_server: str = "imap.gmail.com"
    imap_port: int = Field(default=993, gt=0, lt=65536)
    email: str = ""
    password: SecretStr = SecretStr("")
    use_tls: bool = True
    network_timeout: float = Field(default=30.0, gt=0)  # socket timeout, seconds
    greeting_timeout: float = Field(default=30.0, gt=0)
    connection_timeout: float = Field(default=30.0, gt=0)

    @field_serializer("password", when_used="json")
    def serialize_password(self, value: SecretStr) -> str:
        return value.get_secret_value()


class RetryConfig(BaseModel):
    """Pydantic model for connection retry behaviour."""

    max_attempts: int = Field(default=1, ge=1)
    backoff_unit: float = Field(default=2.0, ge=0)  # delay before attempt n+1 is n * unit


class LoggingConfig(BaseModel):
    """Pydantic model for logging settings."""

    log_level: str = "INFO"
    console_level: str = "WARNING"
    max_file_size: int = Field(default=5_242_880, ge=0)  # 5 MB, 0 disables rotation
    backup_count: int = Field(default=5, ge=0)

    @field_validator("log_level", "console_level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value


class AppConfig(BaseModel):
    """Pydantic model for overall application configuration."""

    version: str = "0.1.0"
    account: AccountConfig = Field(default_factory=AccountConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _fold_legacy_keys(data: dict) -> dict:
    """Move a flat ``{"email": ..., "password": ...}`` file into ``account``."""

    legacy = {key: data.pop(key) for key in ("email", "password") if key in data}
    if legacy:
        account = dict(data.get("account") or {})
        for key, value in legacy.items():
            account.setdefault(key, value)
        data["account"] = account
    return data


class ConfigManager:
    """Loads, updates and saves application configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.path = Path(config_path) if config_path else CONFIG_PATH
        self.config = self._load_config()
        log_settings = self.config.logging
        log_manager = init_logging()
        log_manager.set_level(log_settings.log_level, log_settings.console_level)
        log_manager.set_rotation(log_settings.max_file_size, log_settings.backup_count)

    def _load_config(self) -> AppConfig:
        """Load configuration from file, or defaults if there is none."""

        if not self.path.exists():
            logger.info(f"No config file at {self.path}, using defaults")
            return AppConfig()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise InvalidConfigError(
                    "Configuration file must contain a JSON object",
                    details={"path": str(self.path)},
                )

            config = AppConfig(**_fold_legacy_keys(data))
            logger.debug(f"Configuration loaded from {self.path}")
            return config

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise InvalidConfigError(
                f"Configuration file is not valid JSON: {str(e)}"
            ) from e
        except ValidationError as e:
            logger.error(f"Failed to validate config file: {e}")
            raise InvalidConfigError(
                f"Configuration data does not match expected schema: {str(e)}"
            ) from e
        except MailgateError:
            raise
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {str(e)}") from e

    def save(self) -> None:
        """Write the current configuration to file."""

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(
                    self.config.model_dump(mode="json"),
                    f,
                    indent=2,
                    ensure_ascii=False,
                )
            self.path.chmod(0o600)
            logger.debug("Configuration saved")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to write configuration file: {str(e)}"
            ) from e

    @log_call
    def get_account_config(self) -> AccountConfig:
        """Return the account section."""
        return self.config.account

    @log_call
    def set_config(self, key_path: str, value: Any, persist: bool = True):
        """Set a configuration value using dot-separated key path."""

        keys = key_path.split(".")
        obj = self.config

        for key in keys[:-1]:
            if not hasattr(obj, key):
                raise MissingConfigError(
                    f"Configuration path '{key_path}' is invalid: '{key}' not found"
                )
            obj = getattr(obj, key)

        if not isinstance(obj, BaseModel) or keys[-1] not in type(obj).model_fields:
            raise MissingConfigError(
                f"Configuration key '{keys[-1]}' does not exist in path '{key_path}'"
            )

        updated = obj.model_dump()
        updated[keys[-1]] = value
        try:
            validated = type(obj).model_validate(updated)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid value for '{key_path}': {str(e)}"
            ) from e

        setattr(obj, keys[-1], getattr(validated, keys[-1]))

        if persist:
            self.save()

        logger.info(f"Config key '{key_path}' updated")
