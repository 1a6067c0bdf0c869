"""ID Generation System.

ULID-based identifiers for every document entity.

Features:
- ULIDs: Lexicographically sortable, timestamp-based
- Type-safe: NewType wrappers per entity kind
- Prefixed: Kind prefixes (doc_*, layer_*, ...) keep logs and scripts readable
- Never reused: a fresh ULID per call, nothing is recycled after deletion
"""

from typing import NewType
from ulid import ULID

# ============================================================================
# Type-Safe ID Wrappers
# ============================================================================

DocumentId = NewType("DocumentId", str)
PageId = NewType("PageId", str)
FrameId = NewType("FrameId", str)
LayerId = NewType("LayerId", str)
ComponentId = NewType("ComponentId", str)
TokenId = NewType("TokenId", str)
AssetId = NewType("AssetId", str)
TransactionId = NewType("TransactionId", str)

# ============================================================================
# ID Prefixes
# ============================================================================


class Prefix:
    """ID prefix constants."""

    DOCUMENT = "doc"
    PAGE = "page"
    FRAME = "frame"
    LAYER = "layer"
    COMPONENT = "comp"
    TOKEN = "token"
    ASSET = "asset"
    TRANSACTION = "tx"


_KINDS = {
    Prefix.DOCUMENT: "document",
    Prefix.PAGE: "page",
    Prefix.FRAME: "frame",
    Prefix.LAYER: "layer",
    Prefix.COMPONENT: "component",
    Prefix.TOKEN: "token",
    Prefix.ASSET: "asset",
    Prefix.TRANSACTION: "transaction",
}

# ============================================================================
# ULID Generator
# ============================================================================


class Generator:
    """ULID generator."""

    def generate(self) -> str:
        """Generate a new ULID."""
        return str(ULID())

    def generate_with_prefix(self, prefix: str) -> str:
        """Generate ULID with type prefix."""
        return f"{prefix}_{self.generate()}"


_generator = Generator()


def _ulid_part(id_str: str) -> str:
    return id_str.rsplit("_", 1)[1] if "_" in id_str else id_str


# ============================================================================
# Id Factory
# ============================================================================


class IdFactory:
    """Per-kind ID factory handed to commands through the tool context.

    Tests swap it for a deterministic subclass; production code uses ULIDs.
    """

    def __init__(self, generator: Generator | None = None):
        self._generator = generator or _generator

    def _new(self, prefix: str) -> str:
        return self._generator.generate_with_prefix(prefix)

    def doc(self) -> DocumentId:
        return DocumentId(self._new(Prefix.DOCUMENT))

    def page(self) -> PageId:
        return PageId(self._new(Prefix.PAGE))

    def frame(self) -> FrameId:
        return FrameId(self._new(Prefix.FRAME))

    def layer(self) -> LayerId:
        return LayerId(self._new(Prefix.LAYER))

    def component(self) -> ComponentId:
        return ComponentId(self._new(Prefix.COMPONENT))

    def token(self) -> TokenId:
        return TokenId(self._new(Prefix.TOKEN))

    def asset(self) -> AssetId:
        return AssetId(self._new(Prefix.ASSET))

    def tx(self) -> TransactionId:
        return TransactionId(self._new(Prefix.TRANSACTION))


class SequentialIdFactory(IdFactory):
    """Deterministic IDs (``layer_1``, ``layer_2`` ...) for tests and fixtures."""

    def __init__(self) -> None:
        super().__init__()
        self._counters: dict[str, int] = {}

    def _new(self, prefix: str) -> str:
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}_{self._counters[prefix]}"


# ============================================================================
# Validation and Parsing
# ============================================================================


def is_valid(id_str: str) -> bool:
    """Check if string is a valid (optionally prefixed) ULID.

    Args:
        id_str: ID string to validate

    Returns:
        True if valid ULID format
    """
    try:
        ulid_part = _ulid_part(id_str)
        if len(ulid_part) != 26:
            return False
        ULID.from_str(ulid_part)
        return True
    except (ValueError, IndexError):
        return False


def extract_prefix(id_str: str) -> str | None:
    """Extract prefix from prefixed ID."""
    parts = id_str.rsplit("_", 1)
    return parts[0] if len(parts) == 2 else None


def kind_of(id_str: str) -> str | None:
    """Entity kind encoded in an ID prefix (``"layer"`` for ``layer_...``)."""
    prefix = extract_prefix(id_str)
    return _KINDS.get(prefix) if prefix else None
