"""Exception hierarchy for the extraction and compliance pipeline."""

from typing import Optional


class PolicyMatchError(Exception):
    """Base exception for policy-match errors."""

    def annotate(self, operation: str) -> "PolicyMatchError":
        """Prefix the message with the failing operation, keeping the type."""
        self.args = (f"{operation} :: {self}",)
        return self


class ConfigurationError(PolicyMatchError):
    """Required configuration is missing or malformed."""


class MarshallingError(PolicyMatchError):
    """A model request could not be serialized."""


class GatewayError(PolicyMatchError):
    """The model endpoint call failed."""


class TransportError(GatewayError):
    """Network failure or non-success status from the model endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DeadlineExceededError(TransportError):
    """The model call did not finish before the caller's deadline."""


class ProtocolError(GatewayError):
    """Well-formed HTTP response without the expected envelope fields."""


class ParseError(PolicyMatchError):
    """The model payload does not match the expected schema."""


class TextExtractionError(PolicyMatchError):
    """The document conversion service failed."""


class NotFoundError(PolicyMatchError):
    """A requested record does not exist."""
