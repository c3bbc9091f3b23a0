"""Core models for request body representations."""

from dataclasses import dataclass, field
from enum import StrEnum


class BodyType(StrEnum):
    """Representation kinds a request body can be materialized as."""

    FORM = "form"
    FORM_DATA = "form-data"
    JSON = "json"
    TEXT = "text"
    BYTES = "bytes"
    READER = "reader"
    STREAM = "stream"
    UNDEFINED = "undefined"

    @property
    def single_pass(self) -> bool:
        """Whether the kind drains the whole source into one memoized value."""
        return self in SINGLE_PASS_TYPES


SINGLE_PASS_TYPES = frozenset(
    {BodyType.FORM, BodyType.FORM_DATA, BodyType.JSON, BodyType.TEXT, BodyType.BYTES}
)


@dataclass(frozen=True, slots=True)
class FormField:
    """A multipart part without a filename."""

    name: str
    value: str


@dataclass(frozen=True, slots=True)
class FilePart:
    """Uploaded file from a multipart/form-data body."""

    name: str
    filename: str
    content_type: str
    content: bytes
    headers: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class FormDataContent:
    """Aggregate of a fully read multipart/form-data body."""

    fields: dict[str, str] = field(default_factory=dict)
    files: list[FilePart] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.fields or self.files)

    def file(self, name: str) -> FilePart | None:
        """Get the first file part uploaded under a field name."""
        return next((part for part in self.files if part.name == name), None)
