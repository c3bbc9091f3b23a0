"""Caller options for RequestBody.get()."""

from collections.abc import Mapping
from typing import Any, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from reqbody.models.core import BodyType

MediaTypes = tuple[str, ...]


class ContentTypes(BaseModel):
    """Additional media types per kind, checked alongside the defaults."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    json_: MediaTypes = Field(default=(), validation_alias=AliasChoices("json", "json_"))
    form: MediaTypes = ()
    form_data: MediaTypes = Field(
        default=(), validation_alias=AliasChoices("form-data", "formData", "form_data")
    )
    text: MediaTypes = ()
    bytes_: MediaTypes = Field(default=(), validation_alias=AliasChoices("bytes", "bytes_"))

    def for_type(self, body_type: BodyType) -> MediaTypes:
        """Get the override media types declared for a kind."""
        match body_type:
            case BodyType.JSON:
                return self.json_
            case BodyType.FORM:
                return self.form
            case BodyType.FORM_DATA:
                return self.form_data
            case BodyType.TEXT:
                return self.text
            case BodyType.BYTES:
                return self.bytes_
            case _:
                return ()


class BodyOptions(BaseModel):
    """Options resolving which representation get() returns."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    type: BodyType | None = None
    content_types: ContentTypes = Field(
        default_factory=ContentTypes,
        validation_alias=AliasChoices("contentTypes", "content_types"),
    )

    @classmethod
    def build(cls, options: "BodyOptions | Mapping[str, Any] | None" = None, **kwargs: Any) -> Self:
        """Normalize options given as a model, a mapping and/or keyword arguments."""
        if isinstance(options, cls) and not kwargs:
            return options
        data = options.model_dump(exclude_defaults=True) if isinstance(options, BodyOptions) else dict(options or {})
        return cls.model_validate({**data, **kwargs})
