"""
Exceptions that the problem-details middleware knows how to translate.

Domain "not found" is not here: the catalog handler answers 404 itself.
"""


class CatalogError(Exception):
    """Base class for errors raised by this service."""


class UnsupportedApiVersionError(CatalogError):
    def __init__(self, requested: str, supported: list[str]) -> None:
        self.requested = requested
        self.supported = supported
        super().__init__(
            f"The HTTP resource does not support the API version '{requested}'. "
            f"Supported versions: {', '.join(supported)}."
        )


class NotAcceptableError(CatalogError):
    def __init__(self, accept: str, supported: list[str]) -> None:
        self.accept = accept
        self.supported = supported
        super().__init__(
            f"None of the requested media types '{accept}' can be produced. "
            f"Available: {', '.join(supported)}."
        )


class UnsupportedMediaTypeError(CatalogError):
    def __init__(self, content_type: str, supported: list[str]) -> None:
        self.content_type = content_type
        self.supported = supported
        super().__init__(
            f"Request body media type '{content_type}' is not supported. "
            f"Accepted: {', '.join(supported)}."
        )


class UpstreamUnavailableError(CatalogError):
    """A dependency this service calls could not be reached."""


class UnsupportedOperationError(CatalogError):
    """Signals an operation the caller must handle; never translated to a response."""
