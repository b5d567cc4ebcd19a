"""Tests for structured logging."""

import pytest

from chronicle.observability.logging import SecretRedactor, get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_json_format(self) -> None:
        """Should configure JSON format for production."""
        setup_logging(level="INFO", format="json", redact_secrets=False)
        logger = get_logger("test")
        # Should not raise
        logger.info("test_message")

    def test_setup_console_format(self) -> None:
        """Should configure console format for development."""
        setup_logging(level="DEBUG", format="console", redact_secrets=False)
        logger = get_logger("test")
        logger.debug("test_message")

    def test_invalid_level_falls_back(self) -> None:
        setup_logging(level="chatty", format="json")
        get_logger("test").info("test_message")


class TestSecretRedactor:
    """Tests for SecretRedactor processor."""

    @pytest.fixture
    def redactor(self) -> SecretRedactor:
        return SecretRedactor()

    def test_sensitive_keys_redacted(self, redactor: SecretRedactor) -> None:
        event = redactor(None, "info", {"event": "connect", "password": "hunter2"})
        assert event["password"] == "[REDACTED]"
        assert event["event"] == "connect"

    def test_uri_credentials_redacted(self, redactor: SecretRedactor) -> None:
        event = redactor(None, "info", {"uri": "bolt://neo4j:hunter2@db:7687"})
        assert event["uri"] == "bolt://neo4j:[REDACTED]@db:7687"

    def test_email_redacted(self, redactor: SecretRedactor) -> None:
        event = redactor(None, "info", {"content": "ask dev@example.com"})
        assert event["content"] == "ask [EMAIL]"

    def test_nested_values(self, redactor: SecretRedactor) -> None:
        event = redactor(
            None, "info", {"payload": {"token": "abc", "items": ["x@example.org"]}}
        )
        assert event["payload"]["token"] == "[REDACTED]"
        assert event["payload"]["items"] == ["[EMAIL]"]

    def test_non_string_values_untouched(self, redactor: SecretRedactor) -> None:
        event = redactor(None, "info", {"count": 3})
        assert event["count"] == 3

    def test_custom_key_set(self) -> None:
        redactor = SecretRedactor(keys=frozenset({"workspace_secret"}))
        event = redactor(None, "info", {"workspace_secret": "x", "password": "y"})
        assert event["workspace_secret"] == "[REDACTED]"
        assert event["password"] == "y"
