"""Custom exception hierarchy for subtok errors."""

import regex as re


class SubTokError(Exception):
    """Base exception for all subtok errors."""


class VocabularyLoadError(SubTokError):
    """Raised when a vocabulary or merge source is malformed or contradictory."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        token: str | None = None,
        line: int | None = None,
    ) -> None:
        """Initialize with optional path, token and line that get appended to the message."""
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if token is not None:
            extra += f"(token: {token!r}) "
        if line is not None:
            extra += f"(line: {line}) "
        super().__init__(message + extra)
        self.path = path
        self.token = token
        self.line = line


class UnsupportedTokenizerFormat(SubTokError):
    """Raised when no recognized artifact combination is found."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        found: list[str] | None = None,
    ) -> None:
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if found is not None:
            extra += f"(found: {found}) "
        super().__init__(message + extra)
        self.path = path
        self.found = found


class InvalidId(SubTokError):
    """Raised when decoding an id outside the vocabulary range."""

    def __init__(
        self,
        message: str,
        *,
        invalid_id: int | None = None,
        vocab_size: int | None = None,
    ) -> None:
        extra = " "
        if invalid_id is not None:
            extra += f"(invalid id: {invalid_id}) "
        if vocab_size is not None:
            extra += f"(vocab size: {vocab_size}) "
        super().__init__(message + extra)
        self.invalid_id = invalid_id
        self.vocab_size = vocab_size


class SpecialTokenError(SubTokError):
    """Raised when special token handling fails."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class ConfigError(SubTokError):
    """Raised when a configuration value or option name is invalid."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name is not None:
            extra += f"(available: {available}) (got {invalid_name}) "
        super().__init__(message + extra)
        self.invalid_name = invalid_name
        self.available = available


class PatternError(SubTokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err
