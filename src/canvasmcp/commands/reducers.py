"""
Pure document transformations, one per command variant.

Each reducer takes the current Document, the validated payload and the
call environment (clock reading + actor) and returns a ``Change``: the new
Document and the ids it touched. Reducers never perform I/O; they raise
``CommandError`` when a precondition fails.

Deletes are computed as a closure first (layers, group descendants,
components rooted in removed layers, instances of removed components) and
applied in one pass, so no intermediate or final state holds a dangling
reference.
"""

from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Callable

from ..schema.document import Component, CreateLayerInput, Document, Frame, Page
from ..schema.integrity import Containment, container_of, containment, descendants
from ..schema.layers import (
    LAYER_CLASSES,
    ComponentInstanceLayer,
    GroupLayer,
    ImageLayer,
    InstanceOverrides,
    LayerBase,
    validate_layer,
)
from ..schema.tokens import token_refs
from ..schema.types import AgentActor, Rect, UserActor, new_provenance
from .types import CommandError, ErrorCode


@dataclass(frozen=True)
class Env:
    """Everything a reducer may read besides the document and payload."""

    now: str
    actor: UserActor | AgentActor


@dataclass(frozen=True)
class Change:
    document: Document
    changed_ids: list[str] = field(default_factory=list)


Reducer = Callable[[Document, Any, Env], Change]

REDUCERS: dict[str, Reducer] = {}


def reducer(command_type: str) -> Callable[[Reducer], Reducer]:
    """Register a reducer for a command type."""

    def decorator(fn: Reducer) -> Reducer:
        REDUCERS[command_type] = fn
        return fn

    return decorator


# ============================================================================
# Helpers
# ============================================================================

# Keys a patch may never set; structure changes go through dedicated commands
LAYER_STRUCTURAL_KEYS = frozenset({"id", "frameId", "parentId", "children", "provenance"})
FRAME_STRUCTURAL_KEYS = frozenset({"id", "pageId", "childLayerIds", "provenance"})


def wire_key(key: str) -> str:
    """snake_case -> camelCase; camelCase keys pass through."""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def normalize_patch(patch: dict[str, Any]) -> dict[str, Any]:
    return {wire_key(key): value for key, value in patch.items()}


def not_found(kind: str, entity_id: str) -> CommandError:
    return CommandError(ErrorCode.NOT_FOUND, f"{kind} {entity_id} not found", {"id": entity_id})


def invalid(message: str, details: Any = None) -> CommandError:
    return CommandError(ErrorCode.INVALID, message, details)


def _require_page(doc: Document, page_id: str) -> Page:
    page = doc.pages.get(page_id)
    if page is None:
        raise not_found("Page", page_id)
    return page


def _require_frame(doc: Document, frame_id: str) -> Frame:
    frame = doc.frames.get(frame_id)
    if frame is None:
        raise not_found("Frame", frame_id)
    return frame


def _require_layer(doc: Document, layer_id: str) -> LayerBase:
    layer = doc.layers.get(layer_id)
    if layer is None:
        raise not_found("Layer", layer_id)
    return layer


def _require_unused(doc: Document, entity_id: str) -> None:
    taken = (
        entity_id in doc.pages
        or entity_id in doc.frames
        or entity_id in doc.layers
        or entity_id in doc.components
    )
    if taken:
        raise invalid(f"Id {entity_id} already exists")


def _check_refs(doc: Document, entity: Frame | LayerBase) -> None:
    """Referenced components, assets and tokens must exist."""
    if isinstance(entity, ComponentInstanceLayer):
        if entity.component_id not in doc.components:
            raise not_found("Component", entity.component_id)
        if entity.overrides is not None:
            for layer_id in sorted(entity.overrides.layer_ids()):
                if layer_id not in doc.layers:
                    raise not_found("Layer", layer_id)
    if isinstance(entity, ImageLayer) and entity.asset_id not in doc.assets:
        raise not_found("Asset", entity.asset_id)
    for token_id in token_refs(entity):
        if token_id not in doc.tokens:
            raise not_found("Token", token_id)


def _set_container(doc: Document, holder_id: str, ids: list[str]) -> Document:
    """Replace the ordered child list of a frame or group."""
    frame = doc.frames.get(holder_id)
    if frame is not None:
        return doc.with_frame(frame.model_copy(update={"child_layer_ids": ids}))
    group = doc.layers[holder_id]
    return doc.with_layer(group.model_copy(update={"children": ids}))


def _touch(entity: Any, env: Env) -> Any:
    return entity.model_copy(update={"provenance": entity.provenance.touched(env.now, env.actor)})


def _prune_overrides(overrides: InstanceOverrides | None, removed: set[str]) -> InstanceOverrides | None:
    if overrides is None or not (overrides.layer_ids() & removed):
        return overrides
    text = {k: v for k, v in (overrides.text or {}).items() if k not in removed}
    fill = {k: v for k, v in (overrides.fill_color or {}).items() if k not in removed}
    if not text and not fill:
        return None
    return InstanceOverrides(text=text or None, fill_color=fill or None)


def removal_closure(doc: Document, layer_ids: set[str]) -> tuple[set[str], set[str]]:
    """
    Layers and components that must go when ``layer_ids`` are removed.

    Expands group descendants, then alternates between components rooted in
    removed layers and instances of removed components until stable.
    """
    layers: set[str] = set()
    for layer_id in layer_ids:
        layers.add(layer_id)
        layers.update(descendants(doc, layer_id))

    components: set[str] = set()
    while True:
        doomed = {c.id for c in doc.components.values() if c.root_layer_id in layers}
        instances = {
            layer.id
            for layer in doc.layers.values()
            if isinstance(layer, ComponentInstanceLayer)
            and layer.component_id in doomed
            and layer.id not in layers
        }
        if doomed == components and not instances:
            return layers, components
        components = doomed
        for instance_id in instances:
            layers.add(instance_id)
            layers.update(descendants(doc, instance_id))


def remove_entities(
    doc: Document,
    layer_ids: set[str],
    component_ids: set[str],
    frame_ids: set[str] = frozenset(),
    page_ids: set[str] = frozenset(),
) -> Document:
    """Drop a closed set of entities and every reference to them."""
    layers: dict[str, Any] = {}
    for layer_id, layer in doc.layers.items():
        if layer_id in layer_ids:
            continue
        if isinstance(layer, GroupLayer) and set(layer.children) & layer_ids:
            layer = layer.model_copy(
                update={"children": [c for c in layer.children if c not in layer_ids]}
            )
        if isinstance(layer, ComponentInstanceLayer):
            pruned = _prune_overrides(layer.overrides, layer_ids)
            if pruned is not layer.overrides:
                layer = layer.model_copy(update={"overrides": pruned})
        layers[layer_id] = layer

    frames: dict[str, Frame] = {}
    for frame_id, frame in doc.frames.items():
        if frame_id in frame_ids:
            continue
        if set(frame.child_layer_ids) & layer_ids:
            frame = frame.model_copy(
                update={"child_layer_ids": [c for c in frame.child_layer_ids if c not in layer_ids]}
            )
        frames[frame_id] = frame

    pages: dict[str, Page] = {}
    for page_id, page in doc.pages.items():
        if page_id in page_ids:
            continue
        if set(page.frame_ids) & frame_ids:
            page = page.model_copy(
                update={"frame_ids": [f for f in page.frame_ids if f not in frame_ids]}
            )
        pages[page_id] = page

    components: dict[str, Component] = {}
    for component_id, component in doc.components.items():
        if component_id in component_ids:
            continue
        if set(component.layer_ids) & layer_ids:
            component = component.model_copy(
                update={"layer_ids": [m for m in component.layer_ids if m not in layer_ids]}
            )
        components[component_id] = component

    return doc.replace(layers=layers, frames=frames, pages=pages, components=components)


# ============================================================================
# Pages
# ============================================================================


@reducer("page.create")
def page_create(doc: Document, payload: Any, env: Env) -> Change:
    if payload.page_id in doc.pages:
        raise invalid(f"Page {payload.page_id} already exists")
    page = Page(
        id=payload.page_id,
        document_id=doc.id,
        name=payload.name,
        provenance=new_provenance(env.now, env.actor),
    )
    updated = doc.with_page(page)
    if updated.active_page_id is None:
        updated = updated.replace(active_page_id=page.id)
    return Change(updated.replace(updated_at=env.now), [page.id])


@reducer("page.rename")
def page_rename(doc: Document, payload: Any, env: Env) -> Change:
    page = _require_page(doc, payload.page_id)
    renamed = _touch(page.model_copy(update={"name": payload.name}), env)
    return Change(doc.with_page(renamed).replace(updated_at=env.now), [page.id])


@reducer("page.setActive")
def page_set_active(doc: Document, payload: Any, env: Env) -> Change:
    _require_page(doc, payload.page_id)
    if doc.active_page_id == payload.page_id:
        return Change(doc)
    return Change(doc.replace(active_page_id=payload.page_id, updated_at=env.now), [payload.page_id])


@reducer("page.delete")
def page_delete(doc: Document, payload: Any, env: Env) -> Change:
    page = _require_page(doc, payload.page_id)
    frame_ids = set(page.frame_ids) | {f.id for f in doc.frames.values() if f.page_id == page.id}
    owned = {layer.id for layer in doc.layers.values() if layer.frame_id in frame_ids}
    layer_ids, component_ids = removal_closure(doc, owned)

    updated = remove_entities(doc, layer_ids, component_ids, frame_ids, {page.id})
    if updated.active_page_id == page.id:
        updated = updated.replace(active_page_id=next(iter(updated.pages), None))
    changed = [page.id, *sorted(frame_ids), *sorted(layer_ids), *sorted(component_ids)]
    return Change(updated.replace(updated_at=env.now), changed)


# ============================================================================
# Frames
# ============================================================================


@reducer("frame.create")
def frame_create(doc: Document, payload: Any, env: Env) -> Change:
    _require_unused(doc, payload.frame_id)
    spec = payload.input
    page = _require_page(doc, spec.page_id)
    frame = Frame(
        id=payload.frame_id,
        page_id=page.id,
        name=spec.name,
        platform=spec.platform,
        rect=spec.rect,
        background=spec.background,
        provenance=new_provenance(env.now, env.actor),
    )
    _check_refs(doc, frame)
    page = page.model_copy(update={"frame_ids": [*page.frame_ids, frame.id]})
    updated = doc.with_frame(frame).with_page(page)
    return Change(updated.replace(updated_at=env.now), [frame.id])


@reducer("frame.update")
def frame_update(doc: Document, payload: Any, env: Env) -> Change:
    frame = _require_frame(doc, payload.frame_id)
    patch = normalize_patch(payload.patch)
    forbidden = sorted(FRAME_STRUCTURAL_KEYS & patch.keys())
    if forbidden:
        raise invalid(f"Frame patch may not set {', '.join(forbidden)}", {"keys": forbidden})

    merged = {**frame.model_dump(by_alias=True), **patch}
    merged["provenance"] = frame.provenance.touched(env.now, env.actor)
    updated_frame = Frame.model_validate(merged)
    _check_refs(doc, updated_frame)
    return Change(doc.with_frame(updated_frame).replace(updated_at=env.now), [frame.id])


@reducer("frame.delete")
def frame_delete(doc: Document, payload: Any, env: Env) -> Change:
    frame = _require_frame(doc, payload.frame_id)
    # includes orphaned layers scoped to the frame
    owned = {layer.id for layer in doc.layers.values() if layer.frame_id == frame.id}
    owned.update(frame.child_layer_ids)
    layer_ids, component_ids = removal_closure(doc, owned)

    updated = remove_entities(doc, layer_ids, component_ids, {frame.id})
    changed = [frame.id, *sorted(layer_ids), *sorted(component_ids)]
    return Change(updated.replace(updated_at=env.now), changed)


# ============================================================================
# Layers
# ============================================================================


def _insert_layer(
    doc: Document, layer_id: str, spec: CreateLayerInput, extra: dict[str, Any], env: Env
) -> Change:
    """Shared by layer.create and component.instantiate."""
    _require_unused(doc, layer_id)
    frame = _require_frame(doc, spec.frame_id)

    fields = normalize_patch(extra)
    if spec.type == "group" and fields.get("children"):
        raise invalid("Group layers are created empty; use layer.group to fill them")
    fields.pop("children", None)
    reserved = sorted(LAYER_STRUCTURAL_KEYS & fields.keys())
    if reserved:
        raise invalid(f"Layer input may not set {', '.join(reserved)}", {"keys": reserved})

    holder_id: str | None
    if spec.detached:
        holder_id = None
    elif spec.parent_id is None or spec.parent_id == frame.id:
        holder_id = frame.id
    else:
        parent = doc.layers.get(spec.parent_id)
        if parent is None:
            raise not_found("Parent", spec.parent_id)
        if not isinstance(parent, GroupLayer):
            raise invalid(f"Parent {spec.parent_id} is not a frame or group")
        if parent.frame_id != frame.id:
            raise invalid(f"Group {parent.id} belongs to frame {parent.frame_id}, not {frame.id}")
        holder_id = parent.id

    layer = validate_layer(
        {
            **fields,
            "id": layer_id,
            "type": spec.type,
            "name": spec.name,
            "frameId": frame.id,
            "parentId": holder_id,
            "rect": spec.rect,
            "provenance": new_provenance(env.now, env.actor),
        }
    )
    _check_refs(doc, layer)

    updated = doc.with_layer(layer)
    if holder_id is not None:
        siblings = container_of(doc, layer) or []
        updated = _set_container(updated, holder_id, [*siblings, layer.id])
    return Change(updated.replace(updated_at=env.now), [layer.id])


@reducer("layer.create")
def layer_create(doc: Document, payload: Any, env: Env) -> Change:
    return _insert_layer(doc, payload.layer_id, payload.input, payload.input.type_fields(), env)


@reducer("layer.update")
def layer_update(doc: Document, payload: Any, env: Env) -> Change:
    layer = _require_layer(doc, payload.layer_id)
    patch = normalize_patch(payload.patch)
    forbidden = sorted(LAYER_STRUCTURAL_KEYS & patch.keys())
    if forbidden:
        raise invalid(f"Layer patch may not set {', '.join(forbidden)}", {"keys": forbidden})

    new_type = patch.get("type", layer.type)
    if new_type != layer.type:
        if isinstance(layer, GroupLayer) and layer.children:
            raise invalid(f"Cannot change type of non-empty group {layer.id}")
        target = LAYER_CLASSES.get(new_type)
        if target is None:
            raise invalid(f"Unknown layer type {new_type!r}")
        allowed = {f.alias or name for name, f in target.model_fields.items()}
        base = {k: v for k, v in layer.model_dump(by_alias=True).items() if k in allowed}
    else:
        base = layer.model_dump(by_alias=True)

    merged = {**base, **patch}
    merged["provenance"] = layer.provenance.touched(env.now, env.actor)
    updated_layer = validate_layer(merged)
    _check_refs(doc, updated_layer)
    return Change(doc.with_layer(updated_layer).replace(updated_at=env.now), [layer.id])


@reducer("layer.delete")
def layer_delete(doc: Document, payload: Any, env: Env) -> Change:
    _require_layer(doc, payload.layer_id)
    layer_ids, component_ids = removal_closure(doc, {payload.layer_id})
    updated = remove_entities(doc, layer_ids, component_ids)
    return Change(updated.replace(updated_at=env.now), sorted(layer_ids | component_ids))


@reducer("layer.group")
def layer_group(doc: Document, payload: Any, env: Env) -> Change:
    _require_unused(doc, payload.group_id)
    if not payload.layer_ids:
        raise invalid("layer.group needs at least one layer")
    members = [_require_layer(doc, layer_id) for layer_id in dict.fromkeys(payload.layer_ids)]

    holders = {layer.parent_id for layer in members}
    first = members[0]
    if len(holders) != 1 or containment(doc, first) is Containment.ORPHANED:
        raise invalid("Grouped layers must share one container", {"parents": sorted(map(str, holders))})

    holder_id = first.parent_id
    siblings = container_of(doc, first) or []
    wanted = {layer.id for layer in members}
    ordered = [layer_id for layer_id in siblings if layer_id in wanted]
    position = siblings.index(ordered[0])
    remaining = [layer_id for layer_id in siblings if layer_id not in wanted]
    remaining.insert(position, payload.group_id)

    group = GroupLayer(
        id=payload.group_id,
        name=payload.name,
        parent_id=holder_id,
        frame_id=first.frame_id,
        rect=reduce(Rect.union, [layer.rect for layer in members]),
        children=ordered,
        provenance=new_provenance(env.now, env.actor),
    )
    updated = doc.with_layer(group)
    for layer in members:
        updated = updated.with_layer(_touch(layer.model_copy(update={"parent_id": group.id}), env))
    updated = _set_container(updated, holder_id, remaining)
    return Change(updated.replace(updated_at=env.now), [group.id, *ordered])


@reducer("layer.ungroup")
def layer_ungroup(doc: Document, payload: Any, env: Env) -> Change:
    group = _require_layer(doc, payload.group_id)
    if not isinstance(group, GroupLayer):
        raise invalid(f"Layer {group.id} is not a group")
    rooted = sorted(c.id for c in doc.components.values() if c.root_layer_id == group.id)
    if rooted:
        raise invalid(f"Group {group.id} is the root of component(s) {', '.join(rooted)}")

    holder_id = group.parent_id
    updated = remove_entities(doc, {group.id}, set())
    for child_id in group.children:
        child = updated.layers[child_id]
        updated = updated.with_layer(_touch(child.model_copy(update={"parent_id": holder_id}), env))

    if holder_id is not None:
        siblings = container_of(doc, group) or []
        index = siblings.index(group.id)
        spliced = [*siblings[:index], *group.children, *siblings[index + 1 :]]
        updated = _set_container(updated, holder_id, spliced)
    return Change(updated.replace(updated_at=env.now), [group.id, *group.children])


@reducer("layer.reorder")
def layer_reorder(doc: Document, payload: Any, env: Env) -> Change:
    layer = _require_layer(doc, payload.layer_id)
    siblings = container_of(doc, layer)
    if siblings is None or layer.id not in siblings:
        raise invalid(f"Layer {layer.id} is not held by a frame or group")

    reordered = [layer_id for layer_id in siblings if layer_id != layer.id]
    reordered.insert(payload.to_index, layer.id)
    if reordered == siblings:
        return Change(doc)
    updated = _set_container(doc, layer.parent_id, reordered)
    return Change(updated.replace(updated_at=env.now), [layer.id])


# ============================================================================
# Components
# ============================================================================


@reducer("component.create")
def component_create(doc: Document, payload: Any, env: Env) -> Change:
    spec = payload.input
    if payload.component_id in doc.components:
        raise invalid(f"Component {payload.component_id} already exists")
    root = _require_layer(doc, spec.root_layer_id)
    if isinstance(root, ComponentInstanceLayer):
        raise invalid("A component instance cannot become a component")
    if containment(doc, root) is Containment.ORPHANED:
        raise invalid(f"Layer {root.id} is not held by a frame or group")

    subtree = [root.id, *descendants(doc, root.id)]
    members = list(dict.fromkeys(spec.layer_ids)) if spec.layer_ids is not None else subtree
    outside = sorted(set(members) - set(subtree))
    if outside:
        raise invalid("Component members must lie in the root's subtree", {"layerIds": outside})
    if root.id not in members:
        members.insert(0, root.id)

    component = Component(
        id=payload.component_id,
        name=spec.name,
        root_layer_id=root.id,
        layer_ids=members,
        provenance=new_provenance(env.now, env.actor),
    )
    updated = doc.replace(components={**doc.components, component.id: component}, updated_at=env.now)
    return Change(updated, [component.id])


@reducer("component.instantiate")
def component_instantiate(doc: Document, payload: Any, env: Env) -> Change:
    spec = payload.input
    if spec.component_id not in doc.components:
        raise not_found("Component", spec.component_id)
    layer_input = CreateLayerInput(
        frame_id=spec.frame_id,
        parent_id=spec.parent_id,
        type="componentInstance",
        name=spec.name,
        rect=spec.rect,
    )
    extra = {"componentId": spec.component_id}
    return _insert_layer(doc, payload.instance_layer_id, layer_input, extra, env)


# ============================================================================
# Tokens, assets, selection
# ============================================================================


@reducer("tokens.upsert")
def tokens_upsert(doc: Document, payload: Any, env: Env) -> Change:
    if not payload.tokens:
        return Change(doc)
    tokens = {**doc.tokens, **{token.id: token for token in payload.tokens}}
    return Change(doc.replace(tokens=tokens, updated_at=env.now), [t.id for t in payload.tokens])


@reducer("assets.upsert")
def assets_upsert(doc: Document, payload: Any, env: Env) -> Change:
    if not payload.assets:
        return Change(doc)
    assets = {**doc.assets, **{asset.id: asset for asset in payload.assets}}
    return Change(doc.replace(assets=assets, updated_at=env.now), [a.id for a in payload.assets])


@reducer("selection.set")
def selection_set(doc: Document, payload: Any, env: Env) -> Change:
    selection = payload.selection
    if selection.page_id is not None:
        _require_page(doc, selection.page_id)
    for node_id in selection.selected_ids:
        if doc.node(node_id) is None:
            raise not_found("Node", node_id)
    return Change(doc)
