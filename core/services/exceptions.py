"""
Error taxonomy for the study assistant services.

Views translate these into HTTP responses; services never return HTTP
concerns themselves.
"""


class StudyServiceError(Exception):
    """Base class for all service-layer failures."""
    pass


class NotFoundOrUnauthorized(StudyServiceError):
    """
    Raised when a chat does not exist or is owned by someone else.

    Both cases share one error so that non-owners cannot probe for the
    existence of other users' chats.
    """
    pass


class InputInvalid(StudyServiceError):
    """Raised when a required input is missing (e.g. no content to quiz on)."""
    pass


class StorageFailure(StudyServiceError):
    """Raised when the database is unreachable or rejects a write."""
    pass


class UpstreamUnavailable(StudyServiceError):
    """Raised when the generation provider cannot be reached or errors out."""
    pass


class UpstreamEmpty(StudyServiceError):
    """Raised by flows that cannot degrade when the provider returned no text."""
    pass


class MalformedStructuredOutput(StudyServiceError):
    """
    Raised when model output could not be decoded into the expected structure.

    Attributes:
        text: The normalized text that failed decoding.
        errors: Human-readable descriptions of every problem found.
    """

    def __init__(self, text: str, errors):
        self.text = text
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Malformed structured output")
