"""Representation builders, one per body kind."""

from typing import Any
from urllib.parse import parse_qsl

import orjson

from reqbody.body.deferred import Deferred
from reqbody.body.multipart import FormDataReader, MultipartParser
from reqbody.body.source import BodyReader, BodyStream
from reqbody.core.exceptions import BodyParseError
from reqbody.models.core import BodyType

TEXT_ENCODING = "utf-8"


def build_bytes(stream: BodyStream) -> Deferred[bytes]:
    return Deferred(stream.read_all)


def build_text(raw: Deferred[bytes]) -> Deferred[str]:
    async def _decode() -> str:
        data = await raw
        try:
            return data.decode(TEXT_ENCODING)
        except UnicodeDecodeError as ex:
            raise BodyParseError(BodyType.TEXT, f"body is not valid {TEXT_ENCODING}") from ex

    return Deferred(_decode)


def build_json(text: Deferred[str]) -> Deferred[Any]:
    async def _parse() -> Any:
        try:
            return orjson.loads(await text)
        except orjson.JSONDecodeError as ex:
            raise BodyParseError(BodyType.JSON, str(ex)) from ex

    return Deferred(_parse)


def build_form(text: Deferred[str]) -> Deferred[list[tuple[str, str]]]:
    """URL-encoded form pairs, in body order with duplicates kept."""

    async def _parse() -> list[tuple[str, str]]:
        return parse_qsl(await text, keep_blank_values=True)

    return Deferred(_parse)


def build_form_data(
    stream: BodyStream,
    boundary: str | None,
    max_part_size: int | None = None,
) -> FormDataReader:
    return FormDataReader(MultipartParser(stream, boundary, max_part_size=max_part_size))


def build_reader(stream: BodyStream) -> BodyReader:
    return BodyReader(stream)
