"""
Read-only nested views of a Document.

Used by the query tools: ``document_tree`` renders page -> frame -> layer
nesting and ``search_design_nodes`` walks the same hierarchy with pattern
filters and depth limits.
"""

import re
from typing import Any

from .document import Document, Frame
from .integrity import Containment, containment
from .layers import GroupLayer, LayerBase
from .types import SchemaModel


class NodeNotFoundError(KeyError):
    """Frame or layer id absent from the document."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"No node with id '{node_id}'")

    def __str__(self) -> str:
        return self.args[0]


class SearchPattern(SchemaModel):
    """All given criteria must match; omitted ones match anything."""

    type: str | None = None
    name: str | None = None
    reusable: bool | None = None


def _child_ids(doc: Document, node_id: str) -> list[str]:
    frame = doc.frames.get(node_id)
    if frame is not None:
        return frame.child_layer_ids
    layer = doc.layers.get(node_id)
    if isinstance(layer, GroupLayer):
        return layer.children
    return []


def _reusable_ids(doc: Document) -> set[str]:
    return {component.root_layer_id for component in doc.components.values()}


def serialize_node(doc: Document, node_id: str, max_depth: int | None = None) -> dict[str, Any]:
    """
    Wire form of a frame or layer with its children nested.

    Args:
        doc: Source document
        node_id: Frame or layer id
        max_depth: Levels of children to expand (None = unlimited). Beyond
            the limit, ``children`` lists bare ids.

    Raises:
        NodeNotFoundError: If the id is neither a frame nor a layer
    """
    node = doc.node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)

    data = node.to_wire()
    if isinstance(node, Frame):
        data["type"] = "frame"
        data.pop("childLayerIds", None)
        detached = [
            layer.id
            for layer in doc.layers.values()
            if layer.frame_id == node.id and containment(doc, layer) is Containment.ORPHANED
        ]
        if detached:
            data["detachedLayerIds"] = detached
    elif node.id in _reusable_ids(doc):
        data["reusable"] = True

    child_ids = _child_ids(doc, node_id)
    if isinstance(node, (Frame, GroupLayer)):
        if max_depth is not None and max_depth <= 0:
            data["children"] = list(child_ids)
        else:
            next_depth = None if max_depth is None else max_depth - 1
            data["children"] = [serialize_node(doc, cid, next_depth) for cid in child_ids]
    return data


def build_document_tree(
    doc: Document,
    page_id: str | None = None,
    frame_id: str | None = None,
    selected_ids: list[str] | None = None,
) -> dict[str, Any]:
    """
    Nested page -> frame -> layer view, optionally filtered.

    ``selected_ids`` takes precedence and returns only those nodes (each
    with its subtree). ``frame_id`` narrows to one frame; ``page_id`` to one
    page.
    """
    tree: dict[str, Any] = {
        "id": doc.id,
        "name": doc.name,
        "schemaVersion": doc.schema_version,
        "activePageId": doc.active_page_id,
    }

    if selected_ids is not None:
        tree["nodes"] = [serialize_node(doc, node_id) for node_id in selected_ids]
        return tree

    if frame_id is not None:
        if frame_id not in doc.frames:
            raise NodeNotFoundError(frame_id)
        tree["frames"] = [serialize_node(doc, frame_id)]
        return tree

    pages = doc.pages.values()
    if page_id is not None:
        if page_id not in doc.pages:
            raise NodeNotFoundError(page_id)
        pages = [doc.pages[page_id]]

    tree["pages"] = [
        {
            "id": page.id,
            "name": page.name,
            "frames": [serialize_node(doc, fid) for fid in page.frame_ids],
        }
        for page in pages
    ]
    return tree


def _matches(node: Frame | LayerBase, pattern: SearchPattern, reusable: set[str]) -> bool:
    node_type = "frame" if isinstance(node, Frame) else node.type
    if pattern.type is not None and node_type != pattern.type:
        return False
    if pattern.name is not None and not re.search(pattern.name, node.name, re.IGNORECASE):
        return False
    if pattern.reusable is not None and (node.id in reusable) != pattern.reusable:
        return False
    return True


def search_nodes(
    doc: Document,
    patterns: list[SearchPattern] | None = None,
    node_ids: list[str] | None = None,
    parent_id: str | None = None,
    search_depth: int | None = None,
    read_depth: int | None = None,
) -> list[dict[str, Any]]:
    """
    Find nodes under ``parent_id`` (default: the active page's frames).

    Pattern hits come first, then explicit ``node_ids``. Without either, the
    parent's direct children are returned. ``search_depth`` bounds how deep
    pattern matching descends; ``read_depth`` bounds how much of each hit's
    subtree is serialized.
    """
    if parent_id is not None:
        if doc.node(parent_id) is None:
            raise NodeNotFoundError(parent_id)
        roots = list(_child_ids(doc, parent_id))
    else:
        page = doc.pages.get(doc.active_page_id or "")
        roots = list(page.frame_ids) if page else []

    hits: list[str] = []
    reusable = _reusable_ids(doc)

    def collect(node_id: str, depth: int | None) -> None:
        if depth == 0:
            return
        node = doc.node(node_id)
        if node is None:
            return
        for pattern in patterns or []:
            if _matches(node, pattern, reusable) and node_id not in hits:
                hits.append(node_id)
        for child_id in _child_ids(doc, node_id):
            collect(child_id, None if depth is None else depth - 1)

    if patterns:
        for root_id in roots:
            collect(root_id, search_depth)

    hits.extend(node_ids or [])
    if not patterns and not node_ids:
        hits = roots

    return [serialize_node(doc, node_id, read_depth) for node_id in hits]

