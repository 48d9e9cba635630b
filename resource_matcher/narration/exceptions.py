"""Custom exceptions for the relevance narration client."""


class NarrationError(Exception):
    """Base exception for all narration errors.

    The response assembler catches this and falls back to stored
    descriptions; it never fails a match request.
    """

    pass


class NarrationHTTPError(NarrationError):
    """The text-generation API returned an error status or the request failed."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        """Initialize HTTP error with status code and URL.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (0 when no response was received)
            url: URL that failed
        """
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NarrationTimeoutError(NarrationError):
    """The text-generation API did not answer within the timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class NarrationResponseError(NarrationError):
    """The reply could not be parsed into a JSON object of notes."""

    pass


class NarrationConfigurationError(NarrationError):
    """The narrator is missing required settings (e.g. the API key)."""

    pass
