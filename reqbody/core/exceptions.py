"""Exceptions raised while materializing request bodies."""

from reqbody.models.core import BodyType


class BodyError(Exception):
    """Base exception for request body handling."""


class UnsupportedBodyTypeError(BodyError, TypeError):
    """An explicit representation was requested for a request without a body."""

    def __init__(self, body_type: BodyType) -> None:
        self.body_type = body_type
        super().__init__(f'Body is undefined and cannot be returned as "{body_type}".')


class BodyParseError(BodyError, ValueError):
    """Body content could not be decoded as the requested kind."""

    def __init__(self, kind: BodyType, message: str) -> None:
        self.kind = kind
        super().__init__(f"Unable to parse body as {kind}: {message}")


class MalformedMultipartError(BodyParseError):
    """Multipart delimiter or header syntax is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(BodyType.FORM_DATA, message)


class PartTooLargeError(BodyParseError):
    """A multipart part exceeded the configured size limit."""

    def __init__(self, name: str | None, limit: int) -> None:
        self.name = name
        self.limit = limit
        super().__init__(BodyType.FORM_DATA, f"part {name!r} is larger than {limit} bytes")
