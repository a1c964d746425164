"""Error definitions for the Polyglot document translator."""

from __future__ import annotations


class PolyglotError(Exception):
    """Base exception for all custom errors."""


class InvalidPackageError(PolyglotError):
    """Raised when a document package lacks its primary content stream."""


class MalformedContentError(PolyglotError):
    """Raised when the primary content stream cannot be parsed as XML."""


class UnsupportedFileTypeError(PolyglotError):
    """Raised when a given file extension is not supported."""


class OverwriteRefusedError(PolyglotError):
    """Raised when attempting to overwrite an output without consent."""


class TranslationProviderConfigurationError(PolyglotError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(PolyglotError):
    """Raised inside a provider when a request or its response fails.

    Providers absorb this error and fall back to the untranslated text, so it
    never reaches the file queue.
    """
