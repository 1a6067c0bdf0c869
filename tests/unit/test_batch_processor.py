"""Tests for batch script execution."""

import pytest

from canvasmcp.batch import BatchDesignProcessor
from canvasmcp.core import Settings
from canvasmcp.storage import FileStorage


def layer_names(doc):
    return {layer.id: layer.name for layer in doc.layers.values()}


# ============================================================================
# Success paths
# ============================================================================


@pytest.mark.unit
class TestOperations:
    """Each operation against the fixture document."""

    def test_insert_and_update_through_binding(self, processor, ctx, document):
        script = 'title=I(document, {type: "text", name: "Title", text: "Hi"})\nU(#title, {name: "Heading"})'
        report = processor.process(ctx, script, "b1")
        assert report.success
        layer = document().layers["layer_4"]
        assert layer.name == "Heading"
        assert layer.text == "Hi"
        assert layer.parent_id == "frame_1"
        assert "- Inserted layer `layer_4`" in report.message
        assert "- Updated layer `layer_4`" in report.message
        assert report.message.startswith("# Successfully executed all operations.")

    def test_bare_name_binding(self, processor, ctx, document):
        """``a`` and ``#a`` refer to the same binding."""
        report = processor.process(ctx, 'a=I(root, {name: "A"})\nU(a, {rotation: 15})', "b1")
        assert report.success
        assert document().layers["layer_4"].rotation == 15

    def test_insert_defaults(self, processor, ctx, document):
        processor.process(ctx, "I(document)", "b1")
        layer = document().layers["layer_4"]
        assert layer.type == "rect"
        assert layer.name == "Layer 1"
        assert (layer.rect.w, layer.rect.h) == (100, 100)

    def test_insert_group_with_children(self, processor, ctx, document):
        script = 'I(document, {type: "group", name: "Card", children: [{name: "Bg"}, {type: "text", name: "Label", text: "x"}]})'
        report = processor.process(ctx, script, "b1")
        assert report.success, report.message
        doc = document()
        assert doc.layers["layer_4"].children == ["layer_5", "layer_6"]
        assert doc.layers["layer_6"].parent_id == "layer_4"
        assert doc.frames["frame_1"].child_layer_ids[-1] == "layer_4"

    def test_insert_into_group(self, processor, run, ctx, document):
        run("layer.group", group_id="group_1", layer_ids=["layer_1"], name="G")
        report = processor.process(ctx, 'I("group_1", {name: "Inner"})', "b1")
        assert report.success, report.message
        assert document().layers["group_1"].children == ["layer_1", "layer_4"]

    def test_path_reference_resolves_each_segment(self, processor, ctx, document):
        """``#group/#child`` paths resolve bindings per segment and target the last one."""
        script = 'g=I(document, {type: "group", name: "G"})\ninner=I(#g, {name: "Inner"})\nU("#g/#inner", {name: "Renamed"})'
        report = processor.process(ctx, script, "b1")
        assert report.success, report.message
        assert document().layers["layer_5"].name == "Renamed"

    def test_path_with_empty_segment_rejected(self, processor, ctx, doc_id):
        report = processor.process(ctx, 'U("#g//x", {name: "Renamed"})', "b1")
        assert not report.success
        assert "Invalid target path" in report.message

    def test_path_with_unbound_segment(self, processor, ctx, doc_id):
        report = processor.process(ctx, 'D("#nope/layer_1")', "b1")
        assert "binding variable nope not found" in report.message

    def test_copy(self, processor, ctx, document):
        report = processor.process(ctx, 'c=C("layer_2", document, {name: "Copy", rect: {x: 5, y: 5, w: 1, h: 1}})', "b1")
        assert report.success, report.message
        copy = document().layers["layer_4"]
        assert copy.name == "Copy"
        assert copy.rect.x == 5
        assert "- Copied layer `layer_2` to `layer_4`" in report.message

    def test_copy_group_copies_subtree(self, processor, run, ctx, document):
        run("layer.group", group_id="group_1", layer_ids=["layer_1", "layer_2"], name="Pair")
        report = processor.process(ctx, 'C("group_1")', "b1")
        assert report.success, report.message
        doc = document()
        assert doc.layers["layer_4"].type == "group"
        assert doc.layers["layer_4"].children == ["layer_5", "layer_6"]
        assert layer_names(doc)["layer_5"] == "Box 1"
        assert doc.frames["frame_1"].child_layer_ids[-1] == "layer_4"

    def test_replace(self, processor, ctx, document):
        report = processor.process(ctx, 'R("layer_1", {type: "ellipse", name: "Circle", rotation: 90})', "b1")
        assert report.success, report.message
        layer = document().layers["layer_1"]
        assert layer.type == "ellipse"
        assert layer.name == "Circle"
        assert layer.rotation is None

    def test_move_reorders(self, processor, ctx, document):
        report = processor.process(ctx, 'M("layer_3", document, 0)', "b1")
        assert report.success, report.message
        assert document().frames["frame_1"].child_layer_ids == ["layer_3", "layer_1", "layer_2"]

    def test_delete(self, processor, ctx, document):
        report = processor.process(ctx, 'D("layer_2")', "b1")
        assert report.success
        assert "layer_2" not in document().layers
        assert "- Deleted layer `layer_2`" in report.message

    def test_component_instance_with_overrides(self, processor, run, ctx, document):
        run("layer.create", layer_id="layer_label", input={"frame_id": "frame_1", "type": "text", "name": "Label", "rect": {"x": 0, "y": 0, "w": 5, "h": 5}})
        run("layer.group", group_id="group_btn", layer_ids=["layer_label"], name="Button")
        run("component.create", component_id="comp_btn", input={"name": "Button", "root_layer_id": "group_btn"})

        script = 'I(document, {ref: "comp_btn", name: "Buy", descendants: {"layer_label": {text: "Buy now", fill: "#ff0000"}}})'
        report = processor.process(ctx, script, "b1")
        assert report.success, report.message
        instance = document().layers["layer_4"]
        assert instance.type == "componentInstance"
        assert instance.component_id == "comp_btn"
        assert instance.overrides.text == {"layer_label": "Buy now"}
        assert instance.overrides.fill_color["layer_label"].literal.hex == "#ff0000"

    def test_committed_batch_is_one_undo_step(self, processor, bus, ctx, document):
        processor.process(ctx, 'I(document)\nI(document)\nD("layer_1")', "b1")
        assert len(document().layers) == 4
        ctx.history.undo(bus, ctx)
        assert sorted(document().layers) == ["layer_1", "layer_2", "layer_3"]


# ============================================================================
# Failure and rollback
# ============================================================================


@pytest.mark.unit
class TestAtomicity:
    """A failing statement rolls back the whole batch."""

    def test_rollback_restores_snapshot(self, processor, transactions, ctx, document):
        before = document()
        script = 'a=I(document, {name: "A"})\nU(#a, {name: "B"})\nD("layer_1")\nU(#nope, {name: "x"})'
        report = processor.process(ctx, script, "b1")

        assert not report.success
        assert document() == before
        assert "Failed to execute: `U(#nope, {name: \"x\"})`" in report.message
        assert "binding variable nope not found" in report.message
        assert report.message.endswith("All operations in this block have been rolled back.")
        assert transactions.active() == []
        assert not ctx.history.can_undo()

    def test_command_failure_message(self, processor, ctx, document):
        before = document()
        report = processor.process(ctx, 'I(document)\nD("layer_404")', "b1")
        assert not report.success
        assert "Layer layer_404 not found" in report.message
        assert document() == before

    def test_unbound_bare_name(self, processor, ctx, doc_id):
        report = processor.process(ctx, "D(layer_1)", "b1")
        assert not report.success
        assert "binding variable layer_1 not found" in report.message

    def test_children_on_non_group(self, processor, ctx, document):
        before = document()
        report = processor.process(ctx, 'I(document, {name: "X", children: [{name: "Y"}]})', "b1")
        assert "children are only allowed on group layers" in report.message
        assert document() == before

    def test_move_between_parents_rejected(self, processor, run, ctx, doc_id):
        run("layer.group", group_id="group_1", layer_ids=["layer_1"], name="G")
        report = processor.process(ctx, 'M("layer_3", "group_1", 0)', "b1")
        assert not report.success
        assert "moving between parents is not supported" in report.message

    def test_move_index_must_be_integer(self, processor, ctx, doc_id):
        report = processor.process(ctx, 'M("layer_1", _, "top")', "b1")
        assert "Move index must be an integer" in report.message

    def test_syntax_error(self, processor, ctx, document):
        before = document()
        report = processor.process(ctx, 'I(document)\nI(document, {name: })', "b1")
        assert not report.success
        assert "Failed to execute: `I(document, {name: }" in report.message
        assert document() == before

    def test_no_active_document(self, processor, ctx):
        report = processor.process(ctx, "I(document)", "b1")
        assert not report.success
        assert "No active document" in report.message

    def test_statement_limit(self, bus, transactions, ctx, doc_id, document):
        settings = Settings(_env_file=None, batch_max_statements=2)
        processor = BatchDesignProcessor(bus, transactions, settings)
        report = processor.process(ctx, "I(document)\nI(document)\nI(document)", "b1")
        assert not report.success
        assert "maximum is 2" in report.message
        assert len(document().layers) == 3

    def test_depth_limit(self, bus, transactions, ctx, doc_id):
        settings = Settings(_env_file=None, batch_max_depth=2)
        processor = BatchDesignProcessor(bus, transactions, settings)
        report = processor.process(ctx, "I(document, {style: {fill: {kind: \"none\"}}})", "b1")
        assert not report.success
        assert "nesting depth" in report.message

    def test_deep_nesting_fails_without_leaking_state(self, processor, transactions, run, ctx, document):
        """Pathological nesting is reported as a failure and closes the batch transaction."""
        before = document()
        script = 'I("root", ' + "[" * 800 + "]" * 800 + ")"
        report = processor.process(ctx, script, "deep")

        assert not report.success
        assert "Data nesting depth 21 exceeds maximum 20" in report.message
        assert document() == before
        assert processor.pending() == []
        assert transactions.active() == []

        # later edits are their own undo steps again
        run("layer.update", layer_id="layer_1", patch={"name": "After"})
        assert ctx.history.can_undo()

    def test_unreadable_stored_document(self, processor, transactions, ctx, tmp_path):
        (tmp_path / "doc_bad.canvas").write_text("not json", encoding="utf-8")
        ctx.storage = FileStorage(tmp_path, ids=ctx.ids)
        ctx.active_document_id = "doc_bad"

        report = processor.process(ctx, "I(document)", "b1")
        assert not report.success
        assert "Failed to execute: `<batch>`" in report.message
        assert "Cannot load document doc_bad" in report.message
        assert transactions.active() == []

    def test_empty_page_has_no_frame(self, processor, run, ctx, doc_id):
        run("frame.delete", frame_id="frame_1")
        report = processor.process(ctx, "I(document)", "b1")
        assert "No frames in active page" in report.message


# ============================================================================
# Streaming
# ============================================================================


@pytest.mark.unit
class TestPartialInvocations:
    def test_streamed_batch(self, processor, ctx, document):
        """Each statement runs once, as soon as it is complete."""
        head = 'a=I(document, {name: "A"})\n'
        assert processor.process(ctx, head + "U(#a, {na", "s1", partial=True) is None
        assert document().layers["layer_4"].name == "A"
        assert processor.pending() == ["s1"]

        assert processor.process(ctx, head + 'U(#a, {name: "B"})\nI(do', "s1", partial=True) is None
        assert document().layers["layer_4"].name == "B"

        report = processor.process(ctx, head + 'U(#a, {name: "B"})\nI(document)', "s1")
        assert report.success, report.message
        assert len(document().layers) == 5
        assert processor.pending() == []

    def test_failure_during_stream_reported_at_end(self, processor, ctx, document):
        before = document()
        processor.process(ctx, 'I(document)\nD("layer_404")\n', "s1", partial=True)
        assert document() == before

        report = processor.process(ctx, 'I(document)\nD("layer_404")\nI(document)', "s1")
        assert not report.success
        assert document() == before

    def test_bindings_do_not_leak_between_batches(self, processor, ctx, doc_id):
        assert processor.process(ctx, 'a=I(document, {name: "A"})', "s1").success
        report = processor.process(ctx, "D(#a)", "s2")
        assert not report.success
        assert "binding variable a not found" in report.message

    def test_second_batch_refused_while_first_in_progress(self, processor, transactions, ctx, document):
        """A batch cannot start while another holds its transaction open."""
        s1 = 'a=I(document, {name: "from_s1"})\n'
        processor.process(ctx, s1, "s1", partial=True)

        report = processor.process(ctx, 'b=I(document, {name: "from_s2"})', "s2")
        assert not report.success
        assert "Batch s1 is still in progress" in report.message
        assert "from_s2" not in {layer.name for layer in document().layers.values()}
        assert processor.pending() == ["s1"]
        assert len(transactions.active()) == 1

        report = processor.process(ctx, s1 + 'D("missing")', "s1")
        assert not report.success
        assert [layer.name for layer in document().layers.values()] == ["Box 1", "Box 2", "Box 3"]

        report = processor.process(ctx, 'b=I(document, {name: "from_s2"})', "s3")
        assert report.success, report.message
        assert "from_s2" in {layer.name for layer in document().layers.values()}
        assert transactions.active() == []

    def test_failed_batch_does_not_block_others(self, processor, ctx, doc_id):
        processor.process(ctx, "D(#missing)\n", "s1", partial=True)
        report = processor.process(ctx, "I(document)", "s2")
        assert report.success, report.message
        assert processor.pending() == ["s1"]

    def test_committed_batch_survives_later_failure(self, processor, ctx, document):
        assert processor.process(ctx, 'I(document, {name: "kept"})', "s1").success
        assert not processor.process(ctx, 'I(document)\nD("missing")', "s2").success
        assert "kept" in {layer.name for layer in document().layers.values()}
