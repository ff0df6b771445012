"""Filter expression encoding for the ``filter`` query parameter.

Filters are built as one of three shapes and rendered by :func:`encode_filter`:

    Raw('displayName~"web*"')                      -> passed through (escaped)
    AttrMap.of({"cleared:": "false"})              -> cleared:false
    Triples([("displayName", "~", "esx")])         -> displayName~%22esx%22
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TypeAlias
from urllib.parse import quote

# Attributes whose values the API compares as strings; values for these are
# quoted. Matched as case-sensitive prefixes of the attribute.
STRING_ATTRIBUTES: tuple[str, ...] = (
    "alertValue",
    "collectorDescription",
    "dataPointName",
    "dataSourceName",
    "description",
    "displayName",
    "fullPath",
    "groupName",
    "hostName",
    "instanceName",
    "internalId",
    "monitorObjectName",
    "name",
    "resourceTemplateName",
)


@dataclass(frozen=True)
class Raw:
    """Preformatted filter text; only ``+`` and backslashes are escaped."""

    text: str


@dataclass(frozen=True)
class AttrMap:
    """Attribute to expression pairs; the operator is part of the attribute."""

    pairs: Sequence[tuple[str, object]]

    @classmethod
    def of(cls, mapping: Mapping[str, object]) -> "AttrMap":
        return cls(tuple(mapping.items()))


@dataclass(frozen=True)
class Triples:
    """Ordered (attribute, operator, expression) clauses."""

    triples: Sequence[tuple[str, str, object]]


FilterSpec: TypeAlias = Raw | AttrMap | Triples


def _is_string_attribute(attribute: str) -> bool:
    return attribute.startswith(STRING_ATTRIBUTES)


def encode_expression(expression: str, attribute: str | None = None) -> str:
    """Escape a single filter expression.

    ``+`` is double encoded because the value is decoded once by the
    transport and again by the API. String-typed attributes get their value
    quoted and percent-encoded; escapes already present are kept.
    """
    encoded = expression.replace("+", "%252B").replace("\\", "%5C%5C")
    if attribute is not None and _is_string_attribute(attribute):
        if not (len(encoded) > 1 and encoded[0] == encoded[-1] == '"'):
            encoded = f'"{encoded}"'
        encoded = quote(encoded, safe="%")
    return encoded


def _render(expression: object) -> str:
    # The API spells booleans in lower case.
    if isinstance(expression, bool):
        return "true" if expression else "false"
    return str(expression)


def encode_filter(spec: FilterSpec) -> str:
    """Render a filter spec as the value of the ``filter`` query parameter.

    Raises:
        TypeError: If ``spec`` is not one of the filter shapes.
    """
    if isinstance(spec, Raw):
        return encode_expression(spec.text)
    if isinstance(spec, AttrMap):
        return ",".join(
            f"{attr}{encode_expression(_render(expr), attr)}"
            for attr, expr in sorted(spec.pairs, key=lambda pair: pair[0])
        )
    if isinstance(spec, Triples):
        return ",".join(
            f"{attr}{op}{encode_expression(_render(expr), attr)}"
            for attr, op, expr in spec.triples
        )
    msg = f"Unsupported filter type: {type(spec).__name__}"
    raise TypeError(msg)
