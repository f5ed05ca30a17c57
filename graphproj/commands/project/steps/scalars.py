"""Standard scalar to GraphQL scalar mappings.

Several standard scalars collapse onto one GraphQL scalar (``decimal`` and
``decimal128`` both become ``BigDecimal``); consumers deduplicate by
``graphql_name``.
"""

from __future__ import annotations

from dataclasses import dataclass

from graphproj.commands.project.steps.types import Intrinsic, Scalar, TypeNode

GRAPHQL_BUILTIN_SCALARS = frozenset({"String", "Int", "Float", "Boolean", "ID"})

# Fallback for types and scalars that have no GraphQL projection.
FALLBACK_SCALAR = "String"


@dataclass(frozen=True)
class ScalarMapping:
    graphql_name: str
    specification_url: str | None = None
    description: str | None = None

    @property
    def is_builtin(self) -> bool:
        return self.graphql_name in GRAPHQL_BUILTIN_SCALARS


_STRING = ScalarMapping("String")
_BOOLEAN = ScalarMapping("Boolean")
_INT = ScalarMapping("Int")
_FLOAT = ScalarMapping("Float")
_BIG_INT = ScalarMapping(
    "BigInt", description="A large integer value that may exceed the range of the GraphQL Int type"
)
_NUMERIC = ScalarMapping("Numeric", description="A numeric value with arbitrary precision")
_BIG_DECIMAL = ScalarMapping("BigDecimal", description="A decimal value with arbitrary precision")
_BYTES = ScalarMapping(
    "Bytes",
    "https://datatracker.ietf.org/doc/html/rfc4648#section-4",
    "Base64-encoded binary data",
)
_BYTES_URL = ScalarMapping(
    "BytesUrl",
    "https://datatracker.ietf.org/doc/html/rfc4648#section-5",
    "Base64url-encoded binary data",
)
_UTC_DATE_TIME = ScalarMapping(
    "UTCDateTime",
    "https://scalars.graphql.org/andimarek/date-time",
    "A UTC date-time string in RFC3339 format",
)
_UTC_DATE_TIME_HUMAN = ScalarMapping(
    "UTCDateTimeHuman",
    "https://datatracker.ietf.org/doc/html/rfc7231#section-7.1.1.1",
    "A UTC date-time string in RFC7231 format (HTTP date)",
)
_UTC_DATE_TIME_UNIX = ScalarMapping(
    "UTCDateTimeUnix", description="A UTC date-time as Unix timestamp (seconds since epoch)"
)
_OFFSET_DATE_TIME = ScalarMapping(
    "OffsetDateTime",
    "https://scalars.graphql.org/andimarek/date-time",
    "An offset date-time string in RFC3339 format",
)
_OFFSET_DATE_TIME_HUMAN = ScalarMapping(
    "OffsetDateTimeHuman",
    "https://datatracker.ietf.org/doc/html/rfc7231#section-7.1.1.1",
    "An offset date-time string in RFC7231 format (HTTP date)",
)
_OFFSET_DATE_TIME_UNIX = ScalarMapping(
    "OffsetDateTimeUnix", description="An offset date-time as Unix timestamp (seconds since epoch)"
)
_DURATION = ScalarMapping(
    "Duration",
    "https://www.iso.org/iso-8601-date-and-time-format.html",
    "A duration string in ISO 8601 format",
)
_DURATION_SECONDS = ScalarMapping("DurationSeconds", description="A duration in seconds")
_PLAIN_DATE = ScalarMapping("PlainDate", description="A date string in YYYY-MM-DD format")
_PLAIN_TIME = ScalarMapping("PlainTime", description="A time string in HH:mm:ss format")
_URL = ScalarMapping("URL", "https://url.spec.whatwg.org/", "A valid URL string")
_UNKNOWN = ScalarMapping("Unknown", description="An unknown type represented as a string")

SCALAR_MAPPINGS: dict[str, ScalarMapping] = {
    "string": _STRING,
    "boolean": _BOOLEAN,
    "int32": _INT,
    "int16": _INT,
    "int8": _INT,
    "safeint": _INT,
    "uint32": _INT,
    "uint16": _INT,
    "uint8": _INT,
    "float": _FLOAT,
    "float32": _FLOAT,
    "float64": _FLOAT,
    "integer": _BIG_INT,
    "int64": _BIG_INT,
    "uint64": _BIG_INT,  # too large for GraphQL Int
    "numeric": _NUMERIC,
    "decimal": _BIG_DECIMAL,
    "decimal128": _BIG_DECIMAL,
    "bytes": _BYTES,
    "utcDateTime": _UTC_DATE_TIME,
    "offsetDateTime": _OFFSET_DATE_TIME,
    "duration": _DURATION,
    "plainDate": _PLAIN_DATE,
    "plainTime": _PLAIN_TIME,
    "url": _URL,
    "unknown": _UNKNOWN,
}

# Keyed by "<scalar>_<encoding>"; overrides SCALAR_MAPPINGS when an encoding is set.
ENCODED_SCALAR_MAPPINGS: dict[str, ScalarMapping] = {
    "bytes_base64": _BYTES,
    "bytes_base64url": _BYTES_URL,
    "utcDateTime_rfc3339": _UTC_DATE_TIME,
    "utcDateTime_rfc7231": _UTC_DATE_TIME_HUMAN,
    "utcDateTime_unixTimestamp": _UTC_DATE_TIME_UNIX,
    "offsetDateTime_rfc3339": _OFFSET_DATE_TIME,
    "offsetDateTime_rfc7231": _OFFSET_DATE_TIME_HUMAN,
    "offsetDateTime_unixTimestamp": _OFFSET_DATE_TIME_UNIX,
    "duration_ISO8601": _DURATION,
    "duration_seconds": _DURATION_SECONDS,
}


def scalar_mapping_key(type_: TypeNode) -> str | None:
    """Return the mapping key of a standard scalar, following ``extends``.

    Custom (non-standard) scalars and scalars with no mapped ancestor return
    None. The ``unknown`` intrinsic maps to the ``unknown`` key.
    """
    type_ = type_.original
    if isinstance(type_, Intrinsic):
        return "unknown" if type_.name == "unknown" else None
    if not isinstance(type_, Scalar) or not type_.std:
        return None
    current: Scalar | None = type_
    while current is not None:
        if current.name in SCALAR_MAPPINGS:
            return current.name
        current = current.base
    return None


def get_scalar_mapping(type_: TypeNode, encoding: str | None = None) -> ScalarMapping | None:
    """Look up the GraphQL scalar for a standard scalar, encoding-aware first."""
    key = scalar_mapping_key(type_)
    if key is None:
        return None
    if encoding:
        encoded = ENCODED_SCALAR_MAPPINGS.get(f"{key}_{encoding}")
        if encoded is not None:
            return encoded
    return SCALAR_MAPPINGS[key]


def has_encoding_mapping(type_: TypeNode, encoding: str) -> bool:
    key = scalar_mapping_key(type_)
    return key is not None and f"{key}_{encoding}" in ENCODED_SCALAR_MAPPINGS
