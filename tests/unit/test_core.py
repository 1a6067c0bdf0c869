"""Tests for core utilities: ids, JSON, hashing, validation, config."""

import pytest
from hypothesis import given, strategies as st

from canvasmcp.core import (
    Algorithm,
    IdFactory,
    JSONParseError,
    Prefix,
    SequentialIdFactory,
    Settings,
    ValidationError,
    document_fingerprint,
    dumps,
    extract_prefix,
    hash_canonical,
    hash_string,
    is_valid,
    kind_of,
    loads,
    loads_object,
    validate_data_depth,
    validate_script_size,
)


# ============================================================================
# IDs
# ============================================================================


@pytest.mark.unit
class TestIdFactory:
    """ULID-based entity ids."""

    def test_prefixed_and_valid(self):
        """Every kind carries its prefix and a valid ULID."""
        ids = IdFactory()
        for new_id, prefix in [
            (ids.doc(), Prefix.DOCUMENT),
            (ids.page(), Prefix.PAGE),
            (ids.frame(), Prefix.FRAME),
            (ids.layer(), Prefix.LAYER),
            (ids.component(), Prefix.COMPONENT),
            (ids.token(), Prefix.TOKEN),
            (ids.asset(), Prefix.ASSET),
            (ids.tx(), Prefix.TRANSACTION),
        ]:
            assert extract_prefix(new_id) == prefix
            assert is_valid(new_id)

    def test_never_reused(self):
        """Ids are unique across calls."""
        ids = IdFactory()
        generated = {ids.layer() for _ in range(200)}
        assert len(generated) == 200

    def test_kind_of(self):
        """Kind is decoded from the prefix."""
        assert kind_of(IdFactory().component()) == "component"
        assert kind_of("nonsense") is None

    def test_sequential_factory(self):
        """Deterministic factory counts per prefix."""
        ids = SequentialIdFactory()
        assert ids.layer() == "layer_1"
        assert ids.layer() == "layer_2"
        assert ids.frame() == "frame_1"

    def test_invalid_ids(self):
        """Malformed ULIDs are rejected."""
        assert not is_valid("layer_123")
        assert not is_valid("")


# ============================================================================
# JSON and hashing
# ============================================================================


@pytest.mark.unit
class TestJson:
    def test_round_trip(self):
        """dumps/loads preserve values."""
        value = {"a": [1, 2.5, None, True], "b": {"c": "text"}}
        assert loads(dumps(value)) == value

    def test_invalid_json(self):
        """Malformed input raises JSONParseError."""
        with pytest.raises(JSONParseError):
            loads("{not json")

    def test_loads_object_requires_object(self):
        """A top-level array is not an object."""
        with pytest.raises(JSONParseError):
            loads_object("[1, 2]")

    def test_indent(self):
        """Indented output spans lines."""
        assert "\n" in dumps({"a": 1}, indent=True)

    def test_unserializable(self):
        """Objects orjson cannot encode raise JSONParseError."""
        with pytest.raises(JSONParseError):
            dumps({"a": object()})


@pytest.mark.unit
class TestHash:
    def test_canonical_ignores_key_order(self):
        """Canonical hashing sorts keys."""
        assert hash_canonical({"a": 1, "b": 2}) == hash_canonical({"b": 2, "a": 1})

    def test_algorithms_differ(self):
        """SHA256 and xxhash produce different digests."""
        assert hash_string("x", Algorithm.SHA256) != hash_string("x")
        assert len(hash_string("x", Algorithm.SHA256)) == 64

    def test_truncate(self):
        assert len(hash_string("hello", truncate=8)) == 8

    def test_document_fingerprint_tracks_changes(self, document, run):
        """Fingerprint changes when the document changes."""
        before = document_fingerprint(document())
        assert document_fingerprint(document()) == before
        run("layer.update", layer_id="layer_1", patch={"name": "Renamed"})
        assert document_fingerprint(document()) != before


# ============================================================================
# Validation
# ============================================================================


def test_validate_script_size():
    """Oversized scripts are rejected."""
    validate_script_size("D(#a)", 100)
    with pytest.raises(ValidationError):
        validate_script_size("x" * 101, 100)


def test_validate_data_depth():
    """Deep nesting is rejected."""
    validate_data_depth({"a": {"b": [1]}}, max_depth=5)

    deep: dict = {}
    current = deep
    for _ in range(25):
        current["nested"] = {}
        current = current["nested"]
    with pytest.raises(ValidationError):
        validate_data_depth(deep, max_depth=20)


@given(st.text(max_size=500))
def test_script_size_property(script):
    """Property: scripts within the limit always pass."""
    validate_script_size(script, 500)


# ============================================================================
# Config
# ============================================================================


@pytest.mark.unit
def test_settings_defaults():
    """Defaults apply without environment."""
    settings = Settings(_env_file=None)
    assert settings.undo_limit == 50
    assert settings.file_extension == ".canvas"
    assert settings.batch_max_statements > 0


@pytest.mark.unit
def test_settings_from_env(monkeypatch):
    """CANVAS_ prefixed variables override defaults."""
    monkeypatch.setenv("CANVAS_UNDO_LIMIT", "7")
    monkeypatch.setenv("CANVAS_AGENT_NAME", "designer")
    settings = Settings(_env_file=None)
    assert settings.undo_limit == 7
    assert settings.agent_name == "designer"
