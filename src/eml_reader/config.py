"""
Reader configuration management.

This module handles configuration from environment variables using Pydantic Settings.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Reader configuration from environment variables.

    Every setting can be overridden via an environment variable with the
    ``EML_READER_`` prefix (e.g. ``EML_READER_DECODE_TEXT_ATTACHMENTS=false``).
    """

    # Decode policy: charset-decode text/* parts classified as attachments
    decode_text_attachments: bool = True

    # Charset handling
    default_charset: str = "utf-8"
    charset_errors: str = "replace"  # codec error handler for invalid bytes
    detect_unknown_charsets: bool = False  # buffers the body, uses charset-normalizer

    # Classification of nested leaves without Content-Disposition
    inline_media_types: List[str] = Field(default_factory=lambda: ["text/*"])

    # Parsing limits
    max_header_bytes: int = 1024 * 1024
    max_nesting_depth: int = 50
    read_chunk_size: int = 8192

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_prefix": "EML_READER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def is_inline_media_type(self, media_type: str) -> bool:
        """
        Check a media type against ``inline_media_types``.

        Patterns are either exact (``text/html``) or a type wildcard (``text/*``).
        """
        media_type = media_type.lower()
        for pattern in self.inline_media_types:
            pattern = pattern.lower()
            if pattern.endswith("/*"):
                if media_type.startswith(pattern[:-1]):
                    return True
            elif media_type == pattern:
                return True
        return False


# Global settings instance
settings = Settings()
