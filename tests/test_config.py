"""
Tests for configuration management

Tests cover:
- Defaults when no file exists
- Nested and legacy flat file shapes
- Invalid files
- Updating and saving values
- Logging levels and log file rotation
"""
import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from mailgate.utils.config_manager import AccountConfig, AppConfig, ConfigManager, RetryConfig
from mailgate.utils.errors import InvalidConfigError, MissingConfigError


def write_config(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestConfigurationDefaults:
    """Tests for default configuration values"""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test defaults are used and nothing is written"""
        path = tmp_path / "config.json"
        manager = ConfigManager(path)

        assert manager.config == AppConfig()
        assert not path.exists()

    def test_default_account(self):
        """Test the account defaults point at Gmail over TLS"""
        account = AccountConfig()

        assert account.imap_server == "imap.gmail.com"
        assert account.imap_port == 993
        assert account.use_tls is True
        assert account.network_timeout == 30.0
        assert account.greeting_timeout == 30.0
        assert account.connection_timeout == 30.0

    def test_default_retry(self):
        """Test one attempt with a 2 second backoff unit"""
        retry = RetryConfig()

        assert retry.max_attempts == 1
        assert retry.backoff_unit == 2.0

    def test_zero_attempts_rejected(self):
        """Test max_attempts below 1 fails validation"""
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)

    def test_password_hidden_in_repr(self):
        """Test the password does not leak through repr"""
        account = AccountConfig(email="user@example.com", password="hunter2")

        assert "hunter2" not in repr(account)
        assert account.password.get_secret_value() == "hunter2"


class TestConfigurationLoading:
    """Tests for reading configuration files"""

    def test_legacy_flat_file(self, tmp_path):
        """Test a bare email/password file fills in the account"""
        path = write_config(
            tmp_path / "config.json",
            {"email": "user@gmail.com", "password": "app-password"},
        )

        account = ConfigManager(path).get_account_config()

        assert account.email == "user@gmail.com"
        assert account.password.get_secret_value() == "app-password"
        assert account.imap_server == "imap.gmail.com"

    def test_nested_file(self, tmp_path):
        """Test a full nested file is loaded"""
        path = write_config(
            tmp_path / "config.json",
            {
                "account": {
                    "imap_server": "imap.example.org",
                    "imap_port": 143,
                    "use_tls": False,
                    "email": "me@example.org",
                    "password": "pw",
                },
                "retry": {"max_attempts": 3, "backoff_unit": 1.5},
            },
        )

        config = ConfigManager(path).config

        assert config.account.imap_server == "imap.example.org"
        assert config.account.use_tls is False
        assert config.retry.max_attempts == 3
        assert config.retry.backoff_unit == 1.5

    def test_nested_account_wins_over_flat_keys(self, tmp_path):
        """Test explicit account values are not overwritten by flat keys"""
        path = write_config(
            tmp_path / "config.json",
            {"email": "flat@example.com", "account": {"email": "nested@example.com"}},
        )

        assert ConfigManager(path).config.account.email == "nested@example.com"

    def test_invalid_json(self, tmp_path):
        """Test a corrupt file raises InvalidConfigError"""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidConfigError):
            ConfigManager(path)

    def test_schema_violation(self, tmp_path):
        """Test invalid values raise InvalidConfigError"""
        path = write_config(tmp_path / "config.json", {"retry": {"max_attempts": 0}})

        with pytest.raises(InvalidConfigError):
            ConfigManager(path)

    def test_non_object_file(self, tmp_path):
        """Test a JSON list is rejected"""
        path = write_config(tmp_path / "config.json", ["email", "password"])

        with pytest.raises(InvalidConfigError):
            ConfigManager(path)


class TestConfigurationUpdates:
    """Tests for set_config and save"""

    def test_set_and_persist(self, tmp_path):
        """Test updated values survive a reload"""
        path = tmp_path / "config.json"
        manager = ConfigManager(path)

        manager.set_config("retry.max_attempts", 4)
        manager.set_config("account.password", "new-secret")

        reloaded = ConfigManager(path).config
        assert reloaded.retry.max_attempts == 4
        assert reloaded.account.password.get_secret_value() == "new-secret"

    def test_set_without_persist(self, tmp_path):
        """Test persist=False leaves the file alone"""
        path = tmp_path / "config.json"
        manager = ConfigManager(path)

        manager.set_config("account.email", "me@example.com", persist=False)

        assert manager.config.account.email == "me@example.com"
        assert not path.exists()

    def test_unknown_key(self, tmp_path):
        """Test unknown keys raise MissingConfigError"""
        manager = ConfigManager(tmp_path / "config.json")

        with pytest.raises(MissingConfigError):
            manager.set_config("account.nope", 1, persist=False)

        with pytest.raises(MissingConfigError):
            manager.set_config("nope.email", 1, persist=False)

    def test_invalid_value(self, tmp_path):
        """Test values are validated before being applied"""
        manager = ConfigManager(tmp_path / "config.json")

        with pytest.raises(InvalidConfigError):
            manager.set_config("retry.max_attempts", 0, persist=False)

        assert manager.config.retry.max_attempts == 1


class TestLoggingSettings:
    """Tests for the logging section"""

    def test_levels_are_normalised(self, tmp_path):
        """Test level names are accepted in any case"""
        path = write_config(tmp_path / "config.json", {"logging": {"log_level": "debug"}})

        assert ConfigManager(path).config.logging.log_level == "DEBUG"

    def test_unknown_level_rejected(self, tmp_path):
        """Test an unknown level name is a configuration error"""
        path = write_config(tmp_path / "config.json", {"logging": {"log_level": "LOUD"}})

        with pytest.raises(InvalidConfigError):
            ConfigManager(path)

    def test_rotation_applied_to_log_file(self, tmp_path):
        """Test file size limit and backup count reach the app.log handler"""
        path = write_config(
            tmp_path / "config.json",
            {"logging": {"max_file_size": 1024, "backup_count": 2}},
        )

        ConfigManager(path)

        handlers = [
            h for h in logging.getLogger("mailgate").handlers
            if isinstance(h, RotatingFileHandler)
        ]
        assert len(handlers) == 1
        assert handlers[0].maxBytes == 1024
        assert handlers[0].backupCount == 2

    def test_negative_backup_count_rejected(self, tmp_path):
        """Test a negative backup count is a configuration error"""
        path = write_config(tmp_path / "config.json", {"logging": {"backup_count": -1}})

        with pytest.raises(InvalidConfigError):
            ConfigManager(path)
