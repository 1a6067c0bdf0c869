"""Property-based tests over random edits, scripts and orderings."""

import json

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from canvasmcp.batch import BatchDesignProcessor, Binding, parse_script
from canvasmcp.commands import CommandBus, ToolContext, TransactionManager, UndoHistory
from canvasmcp.core import SequentialIdFactory, Settings
from canvasmcp.editor import EditorSession
from canvasmcp.schema import AgentActor, GroupLayer, find_dangling_references
from canvasmcp.storage import MemoryStorage

pytestmark = pytest.mark.property

RECT = {"x": 0, "y": 0, "w": 10, "h": 10}


def make_session(layers: int = 0):
    """Bus and context over a fresh document ``doc_1`` with frame ``frame_1``."""
    ids = SequentialIdFactory()
    ctx = ToolContext(
        active_document_id="doc_1",
        actor=AgentActor(agent_name="property"),
        storage=MemoryStorage(ids),
        editor=EditorSession(),
        ids=ids,
        now=lambda: "2024-01-01T00:00:00Z",
        history=UndoHistory(limit=1000),
    )
    bus = CommandBus()

    def dispatch(command_type, **payload):
        payload.setdefault("doc_id", "doc_1")
        return bus.dispatch({"type": command_type, "payload": payload}, ctx)

    dispatch("doc.create", doc_id=ids.doc(), name="Property")
    dispatch("frame.create", frame_id=ids.frame(), input={"page_id": "page_1", "name": "F", "rect": {"x": 0, "y": 0, "w": 500, "h": 500}})
    for index in range(layers):
        dispatch("layer.create", layer_id=ids.layer(), input={"frame_id": "frame_1", "name": f"L{index}", "rect": RECT})
    ctx.history.clear()
    return bus, ctx, dispatch


# ============================================================================
# Referential integrity
# ============================================================================

ACTIONS = ["create", "create_in_group", "create_detached", "delete", "group", "ungroup", "reorder",
           "component", "instantiate", "rename", "delete_frame", "new_frame", "new_page", "delete_page",
           "tokens", "bind_token", "batch"]


def batch_scripts(layer_ids):
    """Small scripts over the current layers; the ``x`` script always fails."""
    scripts = [
        'g=I(document, {type: "group", name: "G", children: [{name: "A"}]})\nC(#g, document, {name: "G2"})',
        'x=I(document, {name: "X"})\nD(#x)\nU(#x, {name: "gone"})',
    ]
    for layer_id in layer_ids[:3]:
        scripts.append(f'D("{layer_id}")')
        scripts.append(f'M("{layer_id}", _, 0)')
        scripts.append(f'R("{layer_id}", {{name: "Swapped", type: "ellipse"}})')
    return scripts


@settings(max_examples=60, suppress_health_check=[HealthCheck.too_slow])
@given(st.data())
def test_random_edits_never_dangle(data):
    """Property: no command sequence leaves a dangling reference."""
    bus, ctx, dispatch = make_session(layers=3)
    processor = BatchDesignProcessor(bus, TransactionManager(), Settings(_env_file=None))

    for step in range(data.draw(st.integers(min_value=1, max_value=25))):
        doc = ctx.editor.get_document("doc_1")
        layer_ids = sorted(doc.layers)
        group_ids = sorted(i for i, layer in doc.layers.items() if isinstance(layer, GroupLayer))
        frame_ids = sorted(doc.frames)
        page_ids = sorted(doc.pages)
        token_ids = sorted(doc.tokens)
        action = data.draw(st.sampled_from(ACTIONS))
        pick = lambda options: data.draw(st.sampled_from(options))

        if action == "new_page" or not page_ids:
            dispatch("page.create", page_id=ctx.ids.page(), name="P")
        elif action == "delete_page":
            dispatch("page.delete", page_id=pick(page_ids))
        elif action == "new_frame" or not frame_ids:
            dispatch("frame.create", frame_id=ctx.ids.frame(), input={"page_id": pick(page_ids), "name": "F", "rect": RECT})
        elif action == "tokens":
            token = {"id": pick([*token_ids, ctx.ids.token()]), "kind": "color", "name": "T", "value": {"hex": "#123456"}}
            dispatch("tokens.upsert", tokens=[token])
        elif action == "bind_token" and layer_ids:
            fill = {"kind": "solid", "color": {"tokenRef": {"tokenId": pick([*token_ids, "token_404"])}}}
            dispatch("layer.update", layer_id=pick(layer_ids), patch={"style": {"fill": fill}})
        elif action == "batch":
            processor.process(ctx, pick(batch_scripts(layer_ids)), f"batch_{step}")
        elif action == "create":
            dispatch("layer.create", layer_id=ctx.ids.layer(), input={"frame_id": pick(frame_ids), "name": "N", "rect": RECT})
        elif action == "create_in_group" and group_ids:
            group = doc.layers[pick(group_ids)]
            dispatch("layer.create", layer_id=ctx.ids.layer(),
                     input={"frame_id": group.frame_id, "parent_id": group.id, "name": "N", "rect": RECT})
        elif action == "create_detached":
            dispatch("layer.create", layer_id=ctx.ids.layer(),
                     input={"frame_id": pick(frame_ids), "name": "N", "rect": RECT, "detached": True})
        elif action == "delete" and layer_ids:
            dispatch("layer.delete", layer_id=pick(layer_ids))
        elif action == "group" and layer_ids:
            members = data.draw(st.lists(st.sampled_from(layer_ids), min_size=1, max_size=3, unique=True))
            dispatch("layer.group", group_id=ctx.ids.layer(), layer_ids=members, name="G")
        elif action == "ungroup" and group_ids:
            dispatch("layer.ungroup", group_id=pick(group_ids))
        elif action == "reorder" and layer_ids:
            dispatch("layer.reorder", layer_id=pick(layer_ids), to_index=data.draw(st.integers(0, 6)))
        elif action == "component" and layer_ids:
            dispatch("component.create", component_id=ctx.ids.component(), input={"name": "C", "root_layer_id": pick(layer_ids)})
        elif action == "instantiate" and doc.components:
            dispatch("component.instantiate", instance_layer_id=ctx.ids.layer(),
                     input={"frame_id": pick(frame_ids), "component_id": pick(sorted(doc.components)), "name": "I", "rect": RECT})
        elif action == "rename" and layer_ids:
            dispatch("layer.update", layer_id=pick(layer_ids), patch={"name": "R"})
        elif action == "delete_frame":
            dispatch("frame.delete", frame_id=pick(frame_ids))

        assert find_dangling_references(ctx.editor.get_document("doc_1")) == []


@settings(max_examples=50)
@given(st.integers(min_value=2, max_value=8), st.data())
def test_reorder_matches_remove_then_insert(count, data):
    """Property: reorder is remove-then-insert on the sibling list."""
    _, ctx, dispatch = make_session(layers=count)
    siblings = list(ctx.editor.get_document("doc_1").frames["frame_1"].child_layer_ids)
    source = data.draw(st.integers(0, count - 1))
    target = data.draw(st.integers(0, count - 1))

    result = dispatch("layer.reorder", layer_id=siblings[source], to_index=target)
    assert result.ok

    expected = [layer_id for layer_id in siblings if layer_id != siblings[source]]
    expected.insert(target, siblings[source])
    assert ctx.editor.get_document("doc_1").frames["frame_1"].child_layer_ids == expected


@settings(max_examples=30)
@given(st.lists(st.text(min_size=1, max_size=12), min_size=1, max_size=6))
def test_undo_returns_to_original(names):
    """Property: undoing every edit restores the starting document."""
    bus, ctx, dispatch = make_session(layers=2)
    original = ctx.editor.get_document("doc_1")
    for name in names:
        dispatch("layer.update", layer_id="layer_1", patch={"name": name})
    for _ in names:
        ctx.history.undo(bus, ctx)
    assert ctx.editor.get_document("doc_1") == original


# ============================================================================
# Batch scripts
# ============================================================================

script_text = st.text(
    alphabet=st.characters(max_codepoint=0xFFFF, blacklist_categories=("Cs",)), max_size=30
)
finite_floats = st.floats(allow_nan=False, allow_infinity=False)


@given(script_text, st.integers(min_value=-(10**12), max_value=10**12), finite_floats)
def test_literals_parse(text, integer, real):
    """Property: JSON-style literals parse to the same values."""
    script = f"U(#a, {json.dumps(text)}, {integer}, {real!r}, [true, null])"
    (statement,) = parse_script(script)
    assert statement.args == [Binding("a"), text, integer, real, [True, None]]


STREAM_SCRIPT = (
    'card=I(document, {type: "group", name: "Card \\u00e9", children: [{name: "Bg"}]})\n'
    'U(#card, {rotation: -1.5e1, rect: {x: 10, y: 20, w: 300, h: 40}})\n'
    'copy = C(#card, root, {name: "Copy"}); M(#copy, _, 0)\n'
    'D("layer_9")\n'
)


@given(st.integers(min_value=0, max_value=len(STREAM_SCRIPT)))
def test_partial_prefix_is_statement_prefix(cut):
    """Property: any prefix parses in partial mode to a prefix of the full statement list."""
    full = parse_script(STREAM_SCRIPT)
    partial = parse_script(STREAM_SCRIPT[:cut], partial=True)
    assert len(partial) <= len(full)
    for got, expected in zip(partial, full):
        assert (got.callee, got.args, got.variable) == (expected.callee, expected.args, expected.variable)


@settings(max_examples=30)
@given(st.lists(st.text(alphabet="abcdefgh ", min_size=1, max_size=8), min_size=1, max_size=8))
def test_failed_batch_leaves_document_untouched(names):
    """Property: a batch ending in a failing statement changes nothing."""
    bus, ctx, _ = make_session(layers=2)
    processor = BatchDesignProcessor(bus, TransactionManager(), Settings(_env_file=None))
    before = ctx.editor.get_document("doc_1")

    lines = [f"l{i}=I(document, {{name: {json.dumps(name)}}})" for i, name in enumerate(names)]
    lines.append('U(#l0, {name: "changed"})')
    lines.append("D(#missing)")
    report = processor.process(ctx, "\n".join(lines), "batch")

    assert not report.success
    assert ctx.editor.get_document("doc_1") == before
    assert not ctx.history.can_undo()
