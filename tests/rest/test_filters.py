"""Tests for filter expression encoding."""

import pytest

from lmapi.rest import filters
from lmapi.rest.filters import AttrMap, Raw, Triples

# ---------------------------------------------------------------------------
# Raw
# ---------------------------------------------------------------------------


def test_raw_escapes_plus_and_backslash():
    """Plus signs are double encoded and backslashes doubled-escaped."""
    assert filters.encode_filter(Raw("a+b\\c")) == "a%252Bb%5C%5Cc"


def test_raw_is_otherwise_passed_through():
    """Raw text is not quoted or restructured."""
    text = 'displayName~"web*",cleared:false'
    assert filters.encode_filter(Raw(text)) == text


# ---------------------------------------------------------------------------
# AttrMap
# ---------------------------------------------------------------------------


def test_attrmap_quotes_string_attribute():
    """A string-typed attribute gets its value quoted and percent-encoded."""
    assert filters.encode_filter(AttrMap([("displayName", "esxi")])) == "displayName%22esxi%22"


def test_attrmap_sorted_and_comma_joined():
    """Attributes are emitted in sorted order regardless of input order."""
    spec = AttrMap([("displayName:", "esxi"), ("cleared:", "false")])
    assert filters.encode_filter(spec) == "cleared:false,displayName:%22esxi%22"


def test_attrmap_of_mapping():
    """AttrMap.of accepts a plain mapping with non-string values."""
    spec = AttrMap.of({"severity>": 2, "acked:": "false"})
    assert filters.encode_filter(spec) == "acked:false,severity>2"


def test_attrmap_booleans_rendered_lower_case():
    spec = AttrMap.of({"cleared:": False, "acked:": True})
    assert filters.encode_filter(spec) == "acked:true,cleared:false"


def test_attrmap_already_quoted_value_not_requoted():
    assert filters.encode_filter(AttrMap([("name:", '"core"')])) == "name:%22core%22"


def test_attrmap_string_value_with_space_and_plus():
    """Spaces are percent-encoded; the plus escape survives quoting."""
    spec = AttrMap([("description~", "web a+b")])
    assert filters.encode_filter(spec) == "description~%22web%20a%252Bb%22"


# ---------------------------------------------------------------------------
# Triples
# ---------------------------------------------------------------------------


def test_triples_preserve_input_order():
    spec = Triples([("displayName", "~", "esx"), ("cleared", ":", "true")])
    assert filters.encode_filter(spec) == "displayName~%22esx%22,cleared:true"


def test_triples_non_string_attribute_unquoted():
    assert filters.encode_filter(Triples([("id", ">", 5)])) == "id>5"


def test_string_attribute_match_is_case_sensitive():
    """'DisplayName' does not match the 'displayName' prefix."""
    assert filters.encode_filter(Triples([("DisplayName", ":", "x")])) == "DisplayName:x"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_unknown_filter_type_raises():
    with pytest.raises(TypeError, match="Unsupported filter type"):
        filters.encode_filter("displayName:foo")  # type: ignore[arg-type]
