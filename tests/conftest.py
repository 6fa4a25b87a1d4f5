"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- Reader settings
- Sample email data
- Temporary files
"""

import os
from typing import Generator

import pytest

from eml_reader.charset.registry import CharsetRegistry
from eml_reader.config import Settings
from .fixtures.emails import SAMPLE_EMAILS


@pytest.fixture
def test_settings() -> Settings:
    """
    Create settings for testing with safe defaults.

    Returns:
        Settings instance with test configuration
    """
    return Settings(
        decode_text_attachments=True,
        log_level="DEBUG",
        log_json=False,  # Easier to read in tests
    )


@pytest.fixture
def no_decode_settings() -> Settings:
    """
    Settings with charset decoding of text attachments disabled.

    Returns:
        Settings instance with decode_text_attachments=False
    """
    return Settings(decode_text_attachments=False, log_json=False)


@pytest.fixture
def global_no_decode(monkeypatch) -> Settings:
    """
    Disable text attachment decoding on the process-wide settings instance.

    The flag is restored when the test ends.

    Returns:
        The global Settings instance
    """
    from eml_reader import config

    monkeypatch.setattr(config.settings, "decode_text_attachments", False)
    return config.settings


@pytest.fixture
def registry() -> CharsetRegistry:
    """
    Fresh charset registry without hooks.

    Returns:
        CharsetRegistry instance
    """
    return CharsetRegistry()


@pytest.fixture
def sample_eml_bytes() -> bytes:
    """
    Get simple plain text email bytes for basic tests.

    Returns:
        bytes of a simple .eml file
    """
    return SAMPLE_EMAILS["simple_plain_text"]


@pytest.fixture
def mail_eml() -> bytes:
    """
    Get the two-part message (nested inline text plus a note.txt attachment).

    Returns:
        bytes of a multipart/mixed message
    """
    return SAMPLE_EMAILS["mail"]


@pytest.fixture
def nested_mail_eml() -> bytes:
    """
    Get a message forwarding ``mail_eml`` as a message/rfc822 attachment.

    Returns:
        bytes of a multipart/mixed message
    """
    return SAMPLE_EMAILS["nested_mail"]


@pytest.fixture
def cp1251_attachment_eml() -> bytes:
    """
    Get a message with a quoted-printable windows-1251 text attachment.

    Returns:
        bytes of a multipart/mixed message
    """
    return SAMPLE_EMAILS["cp1251_attachment"]


@pytest.fixture
def malformed_eml() -> bytes:
    """
    Get malformed email for error handling tests.

    Returns:
        bytes of invalid RFC5322 data
    """
    return SAMPLE_EMAILS["malformed"]


@pytest.fixture
def tmp_eml_file(tmp_path) -> Generator[str, None, None]:
    """
    Create temporary .eml file for file-based tests.

    Args:
        tmp_path: pytest's temporary directory fixture

    Yields:
        Path to temporary .eml file
    """
    eml_path = tmp_path / "test_email.eml"
    eml_path.write_bytes(SAMPLE_EMAILS["mail"])
    yield str(eml_path)


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    This prevents test pollution from env var changes.
    """
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


def pytest_configure(config):
    """
    Configure pytest with custom markers and settings.
    """
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
