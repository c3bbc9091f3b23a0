"""Content-Type classification.

Maps a ``Content-Type`` header onto a body representation kind using an
ordered matcher table. Defaults are immutable; caller overrides are merged
into a new table per call and never leak into the defaults.
"""

from collections.abc import Mapping
from types import MappingProxyType

from beartype import beartype
from python_multipart import multipart

from reqbody.models.core import BodyType
from reqbody.models.options import ContentTypes

# Checked in declaration order, first match wins. ``bytes`` has no defaults
# but comes first so an override can claim a type matched further down.
DEFAULT_CONTENT_TYPES: Mapping[BodyType, tuple[str, ...]] = MappingProxyType(
    {
        BodyType.BYTES: (),
        BodyType.JSON: ("application/json", "application/*+json", "application/csp-report"),
        BodyType.FORM: ("application/x-www-form-urlencoded",),
        BodyType.FORM_DATA: ("multipart/form-data",),
        BodyType.TEXT: ("text/*",),
    }
)


def decode_header_value(value: bytes) -> str:
    """Decode a raw header value, UTF-8 first with a latin-1 fallback."""
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


def parse_options_header(value: str | bytes | None) -> tuple[str, dict[str, str]]:
    """Split a header such as Content-Type into its lowercased value and parameters.

    Parameter names are lowercased, quoted values are unescaped and
    RFC 2231 encoded values (``filename*=UTF-8''...``) are decoded.
    """
    if isinstance(value, str):
        value = value.encode("utf-8")
    main_value, params = multipart.parse_options_header(value)
    return (
        main_value.decode("latin-1").strip().lower(),
        {key.decode("latin-1").lower(): decode_header_value(param) for key, param in params.items()},
    )


def match_media_type(media_type: str, pattern: str) -> bool:
    """Match a bare media type against an exact, ``type/*`` or ``type/*+suffix`` pattern."""
    media_type = media_type.lower()
    pattern = pattern.strip().lower()
    if media_type == pattern:
        return True

    major, _, minor = pattern.partition("/")
    media_major, _, media_minor = media_type.partition("/")
    if major != media_major or not minor.startswith("*"):
        return False
    if minor == "*":
        return True
    # structured syntax suffix, e.g. application/*+json
    return minor.startswith("*+") and media_minor.endswith(minor[1:])


def resolve_content_types(overrides: ContentTypes | None = None) -> Mapping[BodyType, tuple[str, ...]]:
    """Build the effective matcher table: defaults plus per-kind overrides."""
    if overrides is None:
        return DEFAULT_CONTENT_TYPES
    return MappingProxyType(
        {kind: (*defaults, *overrides.for_type(kind)) for kind, defaults in DEFAULT_CONTENT_TYPES.items()}
    )


@beartype
def classify(content_type: str | None, overrides: ContentTypes | None = None) -> BodyType:
    """Resolve the representation kind for a Content-Type header value."""
    media_type, _ = parse_options_header(content_type)
    if not media_type:
        return BodyType.BYTES

    for kind, patterns in resolve_content_types(overrides).items():
        if any(match_media_type(media_type, pattern) for pattern in patterns):
            return kind
    return BodyType.BYTES
