"""
Polygot Exceptions

This module contains the exception taxonomy shared by the parser, the stores,
the translation pipeline and the workflow.
Kept in its own module to avoid circular imports between those packages.
"""


class PolygotError(Exception):
    """Base error with optional code and details."""

    default_code = "polygot_error"

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code or self.default_code
        self.details = details or {}


class InvalidInputError(PolygotError):
    """Empty or malformed arguments. Not retried."""

    default_code = "invalid_input"


class UnsupportedLanguageError(PolygotError):
    """Target language code is not in the supported set."""

    default_code = "unsupported_language"


class MissingCredentialError(PolygotError):
    """No API key available for the translation provider."""

    default_code = "missing_credential"


class TranslationError(PolygotError):
    """A remote translation call failed (network, non-2xx, malformed response)."""

    default_code = "translation_failed"


class PersistenceError(PolygotError):
    """Reading or writing glossary, memory or locale JSON failed."""

    default_code = "persistence_failed"
