"""
Integration tests for editor command workflows.

Tests:
- Building and wiring a small graph
- Property bindings end to end, including teleport and remote wires
- Undo/redo across mixed commands
- Clipboard, duplicate and clone
- Save/open round trip
"""

import pytest

from models.graph import NodeKind, ConnectionKind, PortDirection, Position
from canvas.editor import GraphEditor


def remote_connections(editor):
    return [c for c in editor.store.connections.values() if c.kind == ConnectionKind.REMOTE]


@pytest.fixture
def bound_graph(two_node_graph):
    """two_node_graph plus a switch bound into B.enabled (B.enabled was False)."""
    editor, a, b, conn = two_node_graph
    editor.update_config(b.id, "enabled", False, commit=True)
    switch = editor.add_node(NodeKind.BOOLEAN, Position(0, 300), "S")
    assert editor.bind_property(b.id, "enabled", switch.id, "value")
    return editor, a, b, switch


class TestBuildGraph:
    """Tests for node and wire commands."""

    def test_two_node_graph(self, two_node_graph):
        editor, a, b, conn = two_node_graph
        assert list(editor.store.connections) == [conn.id]
        assert conn.kind == ConnectionKind.DIRECT

        for primary in (a.id, b.id):
            editor.select([primary])
            chain = editor.active_chain()
            assert chain.node_ids == {a.id, b.id}
            assert chain.connection_ids == {conn.id}

    def test_colors_follow_picker(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        colors = editor.node_colors()
        assert colors[a.id] == colors[b.id] == editor.settings.palette[0]

    def test_default_position_centred(self, editor):
        node = editor.add_node(NodeKind.NUMBER)
        assert node.position == Position(640 - 128, 400 - 64)
        assert node.label == "New VALUE"

    def test_add_nodes_staggered(self, editor):
        before = len(editor.history)
        nodes = editor.add_nodes({NodeKind.PICKER: 3})
        assert [n.position for n in nodes] == [
            Position(100, 100), Position(150, 150), Position(200, 200),
        ]
        assert len(editor.history) == before + 1

    def test_connect_checks_ports(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        # OUTPUT has no output port, PICKER no input port
        assert editor.connect(b.id, a.id) is None
        assert editor.connect(a.id, a.id) is None
        assert editor.connect(a.id, b.id, ConnectionKind.STREAMING) is None
        assert len(editor.store.connections) == 1

    def test_add_connected_node(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        upstream = editor.add_connected_node(b.id, PortDirection.INPUT, NodeKind.TRANSFORM)
        assert upstream.position == Position(0, 0)
        assert editor.store.has_connection(upstream.id, b.id)

        downstream = editor.add_connected_node(a.id, PortDirection.OUTPUT, NodeKind.LOGIC)
        assert downstream.position == Position(300, 0)
        assert editor.store.has_connection(a.id, downstream.id)

    def test_add_connected_node_rejects_ports(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        assert editor.add_connected_node(a.id, PortDirection.OUTPUT, NodeKind.PICKER) is None
        assert editor.add_connected_node(a.id, PortDirection.INPUT, NodeKind.NUMBER) is None
        assert editor.add_connected_node("ghost", PortDirection.OUTPUT, NodeKind.OUTPUT) is None

    def test_disconnect_port(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        t = editor.add_node(NodeKind.TRANSFORM, Position(0, 300))
        editor.connect(t.id, b.id)
        assert editor.disconnect_port(b.id, PortDirection.INPUT) == 2
        assert editor.store.connections == {}
        assert editor.disconnect_port(b.id, PortDirection.INPUT) == 0

    def test_remove_selected(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        editor.select([a.id])
        removed = editor.remove_selected()
        assert [n.id for n in removed] == [a.id]
        assert editor.store.connections == {}
        assert editor.store.selection == []

    def test_routes(self, two_node_graph):
        editor, a, b, conn = two_node_graph
        paths = editor.routes()
        assert len(paths) == 1
        assert paths[0].connection_id == conn.id

    def test_fit_view(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        assert editor.fit_view()
        assert editor.store.viewport.zoom == pytest.approx(1080 / 556)
        assert not GraphEditor().fit_view()


class TestBindings:
    """Tests for bindings driven through the editor."""

    def test_bound_value_follows_source(self, bound_graph):
        editor, a, b, switch = bound_graph
        assert b.config.enabled is True
        assert len(remote_connections(editor)) == 1

        editor.update_config(switch.id, "value", False, commit=True)
        assert b.config.enabled is False
        editor.update_config(switch.id, "value", True, commit=True)
        assert b.config.enabled is True

    def test_unbind_restores(self, bound_graph):
        editor, a, b, switch = bound_graph
        assert editor.unbind_property(b.id, "enabled")
        assert b.config.enabled is False
        assert remote_connections(editor) == []

    def test_disconnect_remote_unbinds(self, bound_graph):
        editor, a, b, switch = bound_graph
        remote = remote_connections(editor)[0]
        assert editor.disconnect(remote.id)
        assert b.bound_props == {}
        assert b.config.enabled is False
        assert editor.store.get_connection(remote.id) is None

    def test_disconnect_port_keeps_binding_visible(self, two_node_graph):
        editor, a, b, conn = two_node_graph
        number = editor.add_node(NodeKind.NUMBER, Position(0, 300), "N")
        assert editor.connect(number.id, b.id) is not None
        assert editor.bind_property(b.id, "value", number.id, "value")
        assert remote_connections(editor) == []

        assert editor.disconnect_port(b.id, PortDirection.INPUT) == 2
        remote = remote_connections(editor)
        assert [c.pair for c in remote] == [(number.id, b.id)]
        assert b.config.value == 50.0

    def test_removing_source_restores(self, bound_graph):
        editor, a, b, switch = bound_graph
        editor.remove_nodes([switch.id])
        assert b.bound_props == {}
        assert b.config.enabled is False

    def test_percentage_binding(self, editor):
        switch = editor.add_node(NodeKind.BOOLEAN)
        transform = editor.add_node(NodeKind.TRANSFORM)
        editor.bind_property(transform.id, "scale", switch.id, "value")
        assert transform.config.scale == 100.0
        editor.update_config(switch.id, "value", False)
        assert transform.config.scale == 0.0

    def test_teleport(self, bound_graph):
        editor, a, b, switch = bound_graph
        slider = editor.add_node(NodeKind.SLIDER)
        assert editor.begin_teleport(switch.id, "value")
        assert editor.teleport_source == (switch.id, "value")

        # A failed receive keeps the buffer
        assert not editor.complete_teleport(slider.id, "missing")
        assert editor.teleport_source == (switch.id, "value")

        assert editor.complete_teleport(slider.id, "value")
        assert editor.teleport_source is None
        assert slider.config.value == 100.0

    def test_teleport_needs_source(self, editor):
        node = editor.add_node(NodeKind.OUTPUT)
        assert not editor.begin_teleport(node.id, "missing")
        assert not editor.complete_teleport(node.id, "value")

    def test_teleport_cleared_with_source(self, bound_graph):
        editor, a, b, switch = bound_graph
        editor.begin_teleport(switch.id, "value")
        editor.remove_nodes([switch.id])
        assert editor.teleport_source is None


class TestUndoRedo:
    """Tests for history through editor commands."""

    def test_symmetry(self, editor):
        """Undo walks back through every command, redo walks forward again."""
        states = [editor.store.snapshot()]

        def record():
            states.append(editor.store.snapshot())

        a = editor.add_node(NodeKind.PICKER, Position(0, 0))
        record()
        b = editor.add_node(NodeKind.OUTPUT, Position(300, 0))
        record()
        editor.connect(a.id, b.id)
        record()
        s = editor.add_node(NodeKind.BOOLEAN, Position(0, 300))
        record()
        editor.bind_property(b.id, "value", s.id, "value")
        record()
        editor.update_config(s.id, "value", False, commit=True)
        record()
        editor.duplicate_nodes([b.id])
        record()
        editor.remove_nodes([a.id])
        record()

        assert len(editor.history) == len(states)
        for index in range(len(states) - 2, -1, -1):
            assert editor.undo()
            assert editor.store.snapshot() == states[index]
        assert not editor.undo()

        for index in range(1, len(states)):
            assert editor.redo()
            assert editor.store.snapshot() == states[index]
        assert not editor.redo()

    def test_continuous_edit_commits_once(self, editor):
        node = editor.add_node(NodeKind.SLIDER)
        before = len(editor.history)
        for value in (10, 20, 30):
            editor.update_config(node.id, "value", value)
        assert len(editor.history) == before
        assert editor.commit_edit()
        assert len(editor.history) == before + 1

        editor.undo()
        assert node.id in editor.store.nodes
        assert editor.store.nodes[node.id].config.value == 50.0

    def test_undo_keeps_viewport(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        editor.pan_by(30, 40)
        editor.undo()
        assert (editor.store.viewport.x, editor.store.viewport.y) == (30, 40)


class TestClipboard:
    """Tests for copy, paste, duplicate and clone."""

    def test_copy_nothing(self, editor):
        assert editor.copy_selection() == 0
        assert editor.paste_clipboard() == []

    def test_paste_at_position(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        editor.select([a.id, b.id])
        assert editor.copy_selection() == 2

        pasted = editor.paste_clipboard(Position(1000, 1000))
        assert [n.label for n in pasted] == ["A (Copy)", "B (Copy)"]
        assert [n.position for n in pasted] == [Position(1000, 1000), Position(1300, 1000)]
        assert editor.store.has_connection(pasted[0].id, pasted[1].id)
        assert editor.store.selection == [n.id for n in pasted]
        assert len(editor.store.nodes) == 4

    def test_paste_near_centre(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        editor.select([a.id])
        editor.copy_selection()
        pasted = editor.paste_clipboard()
        assert pasted[0].position == Position(540, 300)

    def test_paste_twice_gives_new_ids(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        editor.select([a.id])
        editor.copy_selection()
        first = editor.paste_clipboard()
        second = editor.paste_clipboard()
        assert first[0].id != second[0].id

    def test_paste_strips_bindings(self, bound_graph):
        editor, a, b, switch = bound_graph
        editor.select([b.id, switch.id])
        editor.copy_selection()
        assert all(item["bound_props"] == {} for item in editor.clipboard)

        pasted = editor.paste_clipboard(Position(0, 1000))
        assert all(n.bound_props == {} for n in pasted)
        # The remote wire is not a physical wire and is not pasted
        assert len(remote_connections(editor)) == 1

    def test_duplicate(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        clones = editor.duplicate_nodes([b.id])
        clone = clones[0]
        assert clone.label == "B (Copy)"
        assert clone.position == Position(350, 50)
        assert editor.store.has_connection(a.id, clone.id)
        assert editor.store.selection == [clone.id]

    def test_duplicate_keeps_bindings(self, bound_graph):
        editor, a, b, switch = bound_graph
        clone = editor.duplicate_nodes([b.id])[0]
        assert clone.bound_props["enabled"].source_node_id == switch.id

        editor.update_config(switch.id, "value", False)
        assert clone.config.enabled is False

    def test_clone_node(self, two_node_graph):
        editor, a, b, _ = two_node_graph
        clone = editor.clone_node(a.id)
        assert clone.kind == NodeKind.CLONE
        assert clone.config.source_id == a.id
        assert clone.position == Position(300, 0)
        assert editor.store.has_connection(a.id, clone.id)
        assert editor.clone_node(b.id) is None


class TestDocuments:
    """Tests for save, open and new."""

    def test_save_open(self, bound_graph, temp_dir):
        editor, *_ = bound_graph
        path = temp_dir / "graph.json"
        assert editor.save_document(path)

        other = GraphEditor()
        assert other.open_document(path)
        assert other.store.snapshot() == editor.store.snapshot()
        assert len(other.history) == 1
        assert other.project.current_file == path

    def test_open_missing_keeps_document(self, two_node_graph, temp_dir):
        editor, *_ = two_node_graph
        before = editor.store.snapshot()
        assert not editor.open_document(temp_dir / "missing.json")
        assert editor.store.snapshot() == before

    def test_new_document(self, two_node_graph):
        editor, *_ = two_node_graph
        editor.new_document()
        assert editor.store.nodes == {}
        assert not editor.undo()

    def test_settings_drive_editor(self, settings):
        settings.settings.canvas.snap_size = 10.0
        settings.settings.palette = ["#123456"]
        editor = GraphEditor(settings.settings)
        picker = editor.add_node(NodeKind.PICKER)
        assert editor.node_colors() == {picker.id: "#123456"}
