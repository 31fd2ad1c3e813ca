"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""


class WeatherProviderError(Exception):
    """Raised when geocoding, forecast or alert requests or normalization fail."""


class AdvisoryError(Exception):
    """Raised when the external LLM advisory cannot be obtained or parsed."""

    def __init__(self, message: str, *, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class InvalidInputError(ValueError):
    """Raised when forecast inputs are malformed (e.g. mismatched array lengths)."""
