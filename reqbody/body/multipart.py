"""Streaming multipart/form-data parsing on top of python-multipart.

Body chunks are fed to ``python_multipart.MultipartParser`` as they arrive;
its callbacks assemble each part and finished parts are handed out in body
order. Bodies written with bare LF line endings are rewritten to CRLF before
parsing, and their part data is restored to LF afterwards.
"""

import re
from collections.abc import AsyncGenerator, AsyncIterator
from dataclasses import dataclass, field

import python_multipart
from python_multipart.exceptions import MultipartParseError

from reqbody.body.classifier import decode_header_value, parse_options_header
from reqbody.body.deferred import Deferred
from reqbody.core.exceptions import MalformedMultipartError, PartTooLargeError
from reqbody.core.logger import LogIcon, logger
from reqbody.core.settings import settings as st
from reqbody.models.core import FilePart, FormDataContent, FormField

BARE_LF = re.compile(rb"(?<!\r)\n")


@dataclass(slots=True)
class PartState:
    """Headers and data collected for the part being parsed."""

    headers: dict[str, bytes] = field(default_factory=dict)
    header_field: bytearray = field(default_factory=bytearray)
    header_value: bytearray = field(default_factory=bytearray)
    data: bytearray = field(default_factory=bytearray)
    name: str | None = None
    in_headers: bool = True


class MultipartParser:
    """Split a multipart body on its boundary into fields and files.

    When ``boundary`` is None the first delimiter line found in the body
    defines it. Anything before the opening delimiter is skipped.
    """

    def __init__(
        self,
        stream: AsyncIterator[bytes],
        boundary: str | None,
        *,
        max_part_size: int | None = None,
        charset: str | None = None,
    ) -> None:
        self._stream = stream
        self._boundary = boundary.encode("latin-1") if boundary else None
        self.max_part_size = max_part_size
        self.charset = charset or st.DEFAULT_CHARSET
        self._part: PartState | None = None
        self._ready: list[FormField | FilePart] = []
        self._finished = False
        self._lf_only = False
        self._pending_cr = False

    @property
    def boundary(self) -> str | None:
        return self._boundary.decode("latin-1") if self._boundary else None

    async def parts(self) -> AsyncGenerator[FormField | FilePart, None]:
        """Yield each named part in body order."""
        chunks = aiter(self._stream)
        data = await self._read_preamble(chunks)
        if data is None:
            return

        parser = python_multipart.MultipartParser(self._boundary, self._callbacks())
        while True:
            if self._lf_only:
                data = self._to_crlf(data)
            try:
                parser.write(data)
            except MultipartParseError as ex:
                raise MalformedMultipartError(str(ex)) from ex

            ready, self._ready = self._ready, []
            for part in ready:
                yield part
            if self._finished:
                return

            try:
                data = await anext(chunks)
            except StopAsyncIteration:
                break

        if self._part is not None and self._part.in_headers:
            raise MalformedMultipartError("unexpected end of body in part headers")
        raise MalformedMultipartError("unexpected end of body before closing boundary")

    async def read(self) -> FormDataContent:
        """Drain the body and aggregate fields (last value wins) and files (in order)."""
        content = FormDataContent()
        async for part in self.parts():
            match part:
                case FilePart():
                    content.files.append(part)
                case FormField(name=name, value=value):
                    content.fields[name] = value
        logger.debug(
            "Multipart body parsed",
            fields=len(content.fields),
            files=len(content.files),
            icon=LogIcon.UPLOAD,
        )
        return content

    async def _read_preamble(self, chunks: AsyncIterator[bytes]) -> bytes | None:
        """Skip to the opening delimiter and return the body from there.

        None means the first delimiter is already the closing one.
        """
        buffer = bytearray()
        start = 0
        eof = False
        while True:
            end = buffer.find(b"\n", start)
            if end == -1:
                try:
                    buffer.extend(await anext(chunks))
                except StopAsyncIteration:
                    if eof or start == len(buffer):
                        raise MalformedMultipartError("missing opening boundary") from None
                    eof = True
                    buffer.extend(b"\n")
                continue

            line = bytes(buffer[start : end + 1])
            marker = line.rstrip()
            if self._boundary is None and marker.startswith(b"--") and len(marker) > 2:
                self._boundary = marker[2:].removesuffix(b"--")
                logger.debug("Multipart boundary detected from body", icon=LogIcon.DETECTION)
            if self._boundary is not None:
                delimiter = b"--" + self._boundary
                if marker == delimiter + b"--":
                    return None
                if marker == delimiter:
                    self._lf_only = not line.endswith(b"\r\n")
                    return bytes(buffer[start:])
            start = end + 1

    def _to_crlf(self, data: bytes) -> bytes:
        # a CR closing the previous chunk pairs with a leading LF here
        if self._pending_cr and data.startswith(b"\n"):
            converted = b"\n" + BARE_LF.sub(b"\r\n", data[1:])
        else:
            converted = BARE_LF.sub(b"\r\n", data)
        if data:
            self._pending_cr = data.endswith(b"\r")
        return converted

    def _callbacks(self) -> dict:
        return {
            "on_part_begin": self._on_part_begin,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_end": self._on_end,
        }

    def _on_part_begin(self) -> None:
        self._part = PartState()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._part.header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._part.header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        part = self._part
        if part.header_field:
            part.headers[part.header_field.decode("latin-1").lower()] = bytes(part.header_value).strip()
        part.header_field.clear()
        part.header_value.clear()

    def _on_headers_finished(self) -> None:
        part = self._part
        part.in_headers = False
        disposition, params = parse_options_header(part.headers.get("content-disposition"))
        if not disposition or "name" not in params:
            logger.warning("Skipping multipart part without a name", icon=LogIcon.WARNING)
            return
        part.name = params["name"]

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        part = self._part
        if part.name is None:
            return
        part.data.extend(data[start:end])
        if self.max_part_size is not None and len(part.data) > self.max_part_size:
            raise PartTooLargeError(part.name, self.max_part_size)

    def _on_part_end(self) -> None:
        part, self._part = self._part, None
        if part is None or part.name is None:
            return
        data = bytes(part.data)
        if self._lf_only:
            data = data.replace(b"\r\n", b"\n")
        self._ready.append(self._make_part(part, data))

    def _on_end(self) -> None:
        self._finished = True

    def _make_part(self, part: PartState, data: bytes) -> FormField | FilePart:
        _, disposition = parse_options_header(part.headers["content-disposition"])
        filename = disposition.get("filename")
        if filename is not None:
            # IE sends the full client path
            filename = filename.rsplit("\\", 1)[-1]
            content_type = part.headers.get("content-type")
            return FilePart(
                name=part.name,
                filename=filename,
                content_type=decode_header_value(content_type) if content_type else "application/octet-stream",
                content=data,
                headers={key: decode_header_value(value) for key, value in part.headers.items()},
            )

        _, type_params = parse_options_header(part.headers.get("content-type"))
        charset = type_params.get("charset", self.charset)
        try:
            value = data.decode(charset)
        except (LookupError, UnicodeDecodeError) as ex:
            raise MalformedMultipartError(f"field {part.name!r} is not valid {charset}") from ex
        return FormField(name=part.name, value=value)


class FormDataReader:
    """Handle over a multipart body.

    ``read()`` parses the body once; later calls return the same deferred
    aggregate.
    """

    __slots__ = ("_parser", "_result")

    def __init__(self, parser: MultipartParser) -> None:
        self._parser = parser
        self._result: Deferred[FormDataContent] | None = None

    @property
    def boundary(self) -> str | None:
        return self._parser.boundary

    def read(self) -> Deferred[FormDataContent]:
        if self._result is None:
            self._result = Deferred(self._parser.read)
        return self._result
