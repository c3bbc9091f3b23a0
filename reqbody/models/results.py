"""Tagged results returned by RequestBody.get().

Each kind has its own frozen dataclass carrying a literal ``type`` tag,
so callers can dispatch with ``match``::

    match request_body.get():
        case JsonResult(value=payload):
            data = await payload
        case FormDataResult(value=reader):
            content = await reader.read()

Wrappers are created per call; the ``value`` inside is the memoized one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from reqbody.models.core import BodyType

if TYPE_CHECKING:
    from reqbody.body.deferred import Deferred
    from reqbody.body.multipart import FormDataReader
    from reqbody.body.source import BodyReader, BodyStream


@dataclass(frozen=True, slots=True)
class FormResult:
    value: Deferred[list[tuple[str, str]]]
    type: Literal["form"] = field(default="form", init=False)


@dataclass(frozen=True, slots=True)
class FormDataResult:
    value: FormDataReader
    type: Literal["form-data"] = field(default="form-data", init=False)


@dataclass(frozen=True, slots=True)
class JsonResult:
    value: Deferred[Any]
    type: Literal["json"] = field(default="json", init=False)


@dataclass(frozen=True, slots=True)
class TextResult:
    value: Deferred[str]
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True, slots=True)
class BytesResult:
    value: Deferred[bytes]
    type: Literal["bytes"] = field(default="bytes", init=False)


@dataclass(frozen=True, slots=True)
class ReaderResult:
    value: BodyReader
    type: Literal["reader"] = field(default="reader", init=False)


@dataclass(frozen=True, slots=True)
class StreamResult:
    value: BodyStream
    type: Literal["stream"] = field(default="stream", init=False)


@dataclass(frozen=True, slots=True)
class UndefinedResult:
    value: None = None
    type: Literal["undefined"] = field(default="undefined", init=False)


BodyResult = (
    FormResult
    | FormDataResult
    | JsonResult
    | TextResult
    | BytesResult
    | ReaderResult
    | StreamResult
    | UndefinedResult
)

RESULT_TYPES: dict[BodyType, type[BodyResult]] = {
    BodyType.FORM: FormResult,
    BodyType.FORM_DATA: FormDataResult,
    BodyType.JSON: JsonResult,
    BodyType.TEXT: TextResult,
    BodyType.BYTES: BytesResult,
    BodyType.READER: ReaderResult,
    BodyType.STREAM: StreamResult,
    BodyType.UNDEFINED: UndefinedResult,
}
