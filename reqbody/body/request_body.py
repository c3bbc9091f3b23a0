"""RequestBody: lazy, content-negotiated access to one request body."""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from reqbody.body import builders
from reqbody.body.classifier import classify, parse_options_header
from reqbody.body.source import BodyStream, BodyTee, iter_source
from reqbody.core.exceptions import UnsupportedBodyTypeError
from reqbody.core.logger import LogIcon, logger
from reqbody.core.settings import settings as st
from reqbody.models.core import BodyType
from reqbody.models.options import BodyOptions
from reqbody.models.results import RESULT_TYPES, BodyResult, UndefinedResult

HeaderItems = Mapping[str, str] | Iterable[tuple[str | bytes, str | bytes]]


class ServerRequest(Protocol):
    """Request-like object handed over by the connection layer."""

    headers: Any
    body: Any


def normalize_headers(headers: HeaderItems | None) -> dict[str, str]:
    """Lowercase header names; accepts mappings and (name, value) pairs, str or bytes."""
    if headers is None:
        return {}
    items = headers.items() if hasattr(headers, "items") else headers
    normalized: dict[str, str] = {}
    for key, value in items:
        if isinstance(key, bytes):
            key = key.decode("latin-1")
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        normalized[key.lower()] = value
    return normalized


def detect_body(headers: Mapping[str, str], source: Any) -> bool:
    """Decide from transport evidence whether the request carries a body."""
    if "chunked" in headers.get("transfer-encoding", "").lower():
        return True
    if (length := headers.get("content-length", "").strip()).isdigit():
        return int(length) > 0
    if source is None:
        return False
    if isinstance(source, (bytes, bytearray, memoryview, str)):
        return len(source) > 0
    # streaming sources without a length header
    return True


class RequestBody:
    """Materializes one request body into the representation a caller asks for.

    Single-pass kinds (form, form-data, json, text, bytes) are built once
    and memoized; text, json and form all derive from the one bytes value.
    Reader and stream kinds get a fresh branch of the body on every call.
    The raw source is read at most once through a shared tee, so any mix of
    kinds sees the complete body.
    """

    def __init__(
        self,
        request: ServerRequest,
        *,
        max_part_size: int | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self._headers = normalize_headers(getattr(request, "headers", None))
        source = getattr(request, "body", None)
        self._has_body = detect_body(self._headers, source)
        self._tee = (
            BodyTee(iter_source(source, chunk_size or st.READ_CHUNK_SIZE)) if self._has_body else None
        )
        self._cache: dict[BodyType, Any] = {}
        self._claimed = False
        self._max_part_size = max_part_size if max_part_size is not None else st.MULTIPART_MAX_PART_SIZE

    @property
    def content_type(self) -> str | None:
        return self._headers.get("content-type")

    @property
    def claimed(self) -> bool:
        """True once a single-pass representation has been bound to the source."""
        return self._claimed

    def has(self) -> bool:
        """Whether the request carries a body. Never consumes it."""
        return self._has_body

    def get(self, options: BodyOptions | Mapping[str, Any] | None = None, **kwargs: Any) -> BodyResult:
        """Return the tagged representation resolved from ``options``.

        Raises:
            UnsupportedBodyTypeError: an explicit type was requested but the
                request has no body.
        """
        opts = BodyOptions.build(options, **kwargs)

        if not self._has_body:
            if opts.type in (None, BodyType.UNDEFINED):
                return UndefinedResult()
            raise UnsupportedBodyTypeError(opts.type)

        kind = opts.type or classify(self.content_type, opts.content_types)
        if kind is BodyType.UNDEFINED:
            return UndefinedResult()
        if kind.single_pass:
            return RESULT_TYPES[kind](self._materialize(kind))

        stream = self._branch()
        if kind is BodyType.READER:
            return RESULT_TYPES[kind](builders.build_reader(stream))
        return RESULT_TYPES[kind](stream)

    def _branch(self) -> BodyStream:
        return self._tee.branch()

    def _materialize(self, kind: BodyType) -> Any:
        if not kind.single_pass:
            raise ValueError(f"{kind} is not a single-pass body type")
        if kind in self._cache:
            logger.debug("Body representation reused", kind=kind.value, icon=LogIcon.CACHE)
            return self._cache[kind]

        match kind:
            case BodyType.BYTES:
                value = builders.build_bytes(self._branch())
            case BodyType.TEXT:
                value = builders.build_text(self._materialize(BodyType.BYTES))
            case BodyType.JSON:
                value = builders.build_json(self._materialize(BodyType.TEXT))
            case BodyType.FORM:
                value = builders.build_form(self._materialize(BodyType.TEXT))
            case BodyType.FORM_DATA:
                _, params = parse_options_header(self.content_type)
                value = builders.build_form_data(self._branch(), params.get("boundary"), self._max_part_size)

        self._claimed = True
        self._cache[kind] = value
        logger.debug("Body representation built", kind=kind.value, icon=LogIcon.PROCESSING)
        return value
