"""
Referential integrity of a Document.

Every id that appears in a cross reference must exist in its owning map.
A layer may legitimately sit outside every container while still scoped to a
frame (``frameId`` set, ``parentId`` null): that is the explicit ORPHANED
variant, not a dangling reference.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from returns.result import Failure, Result, Success

from .document import Document
from .layers import ComponentInstanceLayer, GroupLayer, ImageLayer, LayerBase
from .tokens import token_refs


class Containment(str, Enum):
    """Where a layer lives relative to its frame."""

    CONTAINED = "contained"  # listed by its frame or parent group
    ORPHANED = "orphaned"  # frame-scoped, outside every container


@dataclass(frozen=True)
class Violation:
    """One broken reference or containment mismatch."""

    entity: str
    entity_id: str
    field: str
    ref: str | None

    def __str__(self) -> str:
        return f"{self.entity} {self.entity_id}: {self.field} -> {self.ref}"


class IntegrityError(Exception):
    """Document contains dangling references."""

    def __init__(self, violations: list[Violation]):
        self.violations = violations
        preview = "; ".join(str(v) for v in violations[:5])
        super().__init__(f"{len(violations)} integrity violation(s): {preview}")


def container_of(doc: Document, layer: LayerBase) -> list[str] | None:
    """Ordered sibling list that holds ``layer``, or None when orphaned."""
    if layer.parent_id is None:
        return None
    parent = doc.layers.get(layer.parent_id)
    if isinstance(parent, GroupLayer):
        return parent.children
    frame = doc.frames.get(layer.parent_id)
    return frame.child_layer_ids if frame else None


def containment(doc: Document, layer: LayerBase) -> Containment:
    siblings = container_of(doc, layer)
    if siblings is not None and layer.id in siblings:
        return Containment.CONTAINED
    return Containment.ORPHANED


def descendants(doc: Document, layer_id: str) -> list[str]:
    """Pre-order ids below ``layer_id`` (excluding it)."""
    out: list[str] = []
    layer = doc.layers.get(layer_id)
    if isinstance(layer, GroupLayer):
        for child_id in layer.children:
            out.append(child_id)
            out.extend(descendants(doc, child_id))
    return out


def ancestors(doc: Document, layer_id: str) -> list[str]:
    """Group ids above ``layer_id``, nearest first."""
    out: list[str] = []
    layer = doc.layers.get(layer_id)
    while layer is not None and layer.parent_id in doc.layers:
        out.append(layer.parent_id)
        layer = doc.layers.get(layer.parent_id)
    return out


def _page_violations(doc: Document) -> Iterator[Violation]:
    if doc.active_page_id is not None and doc.active_page_id not in doc.pages:
        yield Violation("document", doc.id, "activePageId", doc.active_page_id)
    for page in doc.pages.values():
        if page.document_id != doc.id:
            yield Violation("page", page.id, "documentId", page.document_id)
        for frame_id in page.frame_ids:
            frame = doc.frames.get(frame_id)
            if frame is None or frame.page_id != page.id:
                yield Violation("page", page.id, "frameIds", frame_id)


def _frame_violations(doc: Document) -> Iterator[Violation]:
    for frame in doc.frames.values():
        page = doc.pages.get(frame.page_id)
        if page is None or frame.id not in page.frame_ids:
            yield Violation("frame", frame.id, "pageId", frame.page_id)
        for layer_id in frame.child_layer_ids:
            layer = doc.layers.get(layer_id)
            if layer is None or layer.parent_id != frame.id or layer.frame_id != frame.id:
                yield Violation("frame", frame.id, "childLayerIds", layer_id)


def _layer_violations(doc: Document) -> Iterator[Violation]:
    for layer in doc.layers.values():
        if layer.frame_id not in doc.frames:
            yield Violation("layer", layer.id, "frameId", layer.frame_id)
        if layer.parent_id is not None:
            siblings = container_of(doc, layer)
            if siblings is None or layer.id not in siblings:
                yield Violation("layer", layer.id, "parentId", layer.parent_id)
        if isinstance(layer, GroupLayer):
            for child_id in layer.children:
                child = doc.layers.get(child_id)
                if child is None or child.parent_id != layer.id:
                    yield Violation("layer", layer.id, "children", child_id)
        if isinstance(layer, ComponentInstanceLayer):
            if layer.component_id not in doc.components:
                yield Violation("layer", layer.id, "componentId", layer.component_id)
            if layer.overrides is not None:
                for ref in sorted(layer.overrides.layer_ids()):
                    if ref not in doc.layers:
                        yield Violation("layer", layer.id, "overrides", ref)
        if isinstance(layer, ImageLayer) and layer.asset_id not in doc.assets:
            yield Violation("layer", layer.id, "assetId", layer.asset_id)
        for token_id in token_refs(layer):
            if token_id not in doc.tokens:
                yield Violation("layer", layer.id, "tokenRef", token_id)


def _component_violations(doc: Document) -> Iterator[Violation]:
    for component in doc.components.values():
        if component.root_layer_id not in doc.layers:
            yield Violation("component", component.id, "rootLayerId", component.root_layer_id)
        for layer_id in component.layer_ids:
            if layer_id not in doc.layers:
                yield Violation("component", component.id, "layerIds", layer_id)


def find_dangling_references(doc: Document) -> list[Violation]:
    """Every broken cross reference in ``doc`` (empty when consistent)."""
    violations: list[Violation] = []
    violations.extend(_page_violations(doc))
    violations.extend(_frame_violations(doc))
    violations.extend(_layer_violations(doc))
    violations.extend(_component_violations(doc))
    for frame in doc.frames.values():
        if frame.background is not None:
            for token_id in token_refs(frame.background):
                if token_id not in doc.tokens:
                    violations.append(Violation("frame", frame.id, "background", token_id))
    return violations


def validate_document(doc: Document) -> Result[Document, IntegrityError]:
    """Result-pattern integrity check."""
    violations = find_dangling_references(doc)
    if violations:
        return Failure(IntegrityError(violations))
    return Success(doc)
