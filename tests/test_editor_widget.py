"""
Integration tests for the editor widget.

Tests the session lifecycle (open, two-phase close, cancelled teardown),
load failures and handing the flattened result to the host.
"""

import pytest
from PySide6.QtCore import QPointF
from PySide6.QtTest import QTest

from figmark.editor.editor_widget import AnnotationEditorWidget
from figmark.editor.render import ImageReference
from figmark.editor.session import EditorMode


@pytest.fixture
def editor():
    """Provide an editor widget with fixed fit bounds."""
    widget = AnnotationEditorWidget(max_size=(400, 300))
    yield widget
    widget.deleteLater()


def draw_rect(editor, start=(10, 10), end=(50, 40)):
    controller = editor.controller
    controller.pointer_down(QPointF(*start))
    controller.pointer_move(QPointF(*end))
    controller.pointer_up(QPointF(*end))


class TestOpenImage:
    """Tests for opening sessions."""

    def test_open_creates_session(self, editor, png_factory):
        """Should build the base layer and an empty store."""
        opened = []
        editor.session_opened.connect(lambda: opened.append(True))

        assert editor.open_image(ImageReference(png_factory(800, 300), "figure.png"))

        assert editor.has_session
        assert editor.base_layer.size == (400, 150)
        assert editor.store.annotations == ()
        assert editor.canvas.overlay_layer.size == (400, 150)
        assert opened == [True]

    def test_load_failure(self, editor):
        """Should report undecodable images without opening a session."""
        messages = []
        editor.load_failed.connect(messages.append)

        assert not editor.open_image(ImageReference(b"garbage", "broken"))

        assert not editor.has_session
        assert len(messages) == 1

    def test_reopen_replaces_session(self, editor, png_factory):
        """Should start from an empty list when a new image is opened."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        draw_rect(editor)

        editor.open_image(ImageReference(png_factory(120, 90)))

        assert editor.store.annotations == ()
        assert editor.store.history_index == -1
        assert editor.base_layer.size == (120, 90)


class TestTeardown:
    """Tests for two-phase session close."""

    def test_close_is_deferred(self, editor, png_factory):
        """Should mark closing immediately and dispose on the next tick."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        closed = []
        editor.session_closed.connect(lambda: closed.append(True))

        editor.close_session()

        assert not editor.has_session
        assert editor.teardown_pending
        assert editor.store is not None
        assert closed == []

        QTest.qWait(50)

        assert not editor.teardown_pending
        assert editor.store is None
        assert closed == [True]

    def test_close_drops_pending_drag(self, editor, png_factory):
        """Should cancel an in-progress drag without recording it."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        editor.controller.pointer_down(QPointF(10, 10))
        editor.controller.pointer_move(QPointF(40, 40))
        store = editor.store

        editor.close_session()

        assert store.pending is None
        assert store.annotations == ()

    def test_new_session_cancels_teardown(self, editor, png_factory):
        """Should keep the new session alive when opened before teardown runs."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        editor.close_session()

        editor.open_image(ImageReference(png_factory(60, 40)))
        new_store = editor.store
        QTest.qWait(50)

        assert not editor.teardown_pending
        assert editor.has_session
        assert editor.store is new_store
        assert editor.base_layer.size == (60, 40)

    def test_dispose_is_idempotent(self, editor, png_factory):
        """Should tolerate disposing twice."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        closed = []
        editor.session_closed.connect(lambda: closed.append(True))

        editor._dispose_session()
        editor._dispose_session()

        assert closed == [True]


class TestSave:
    """Tests for save and cancel."""

    def test_save_unavailable_without_annotations(self, editor, png_factory):
        """Should not save an empty session."""
        editor.open_image(ImageReference(png_factory(100, 100)))

        assert not editor.save()
        assert editor.has_session

    def test_save_hands_result_to_host(self, png_factory):
        """Should call the host callback and then close the session."""
        received = []
        editor = AnnotationEditorWidget(
            on_save=lambda png, uri, annotations: received.append((png, uri, annotations)),
            max_size=(400, 300),
        )
        editor.open_image(ImageReference(png_factory(100, 100)))
        draw_rect(editor)
        editor.controller.save_note("Label")

        assert editor.save()

        png, uri, annotations = received[0]
        assert png.startswith(b"\x89PNG")
        assert uri.startswith("data:image/png;base64,")
        assert annotations[0]["text"] == "Label"
        assert editor.teardown_pending
        editor.deleteLater()

    def test_save_blocked_while_drawing(self, editor, png_factory):
        """Should refuse to save during a drag."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        draw_rect(editor)
        editor.controller.skip_note()
        editor.controller.pointer_down(QPointF(60, 60))

        assert not editor.save()

    def test_cancel_notifies_host(self, png_factory):
        """Should emit cancelled and call the host callback."""
        calls = []
        editor = AnnotationEditorWidget(on_cancel=lambda: calls.append("cb"), max_size=(400, 300))
        editor.cancelled.connect(lambda: calls.append("signal"))
        editor.open_image(ImageReference(png_factory(100, 100)))

        editor.cancel()

        assert calls == ["signal", "cb"]
        assert editor.teardown_pending
        editor.deleteLater()


class TestToolbar:
    """Tests for toolbar state."""

    def test_buttons_follow_state(self, editor, png_factory):
        """Should enable undo/clear/save only when they apply."""
        editor.open_image(ImageReference(png_factory(100, 100)))
        assert not editor._undo_btn.isEnabled()
        assert not editor._save_btn.isEnabled()

        draw_rect(editor)
        assert editor.controller.mode == EditorMode.EDITING_NOTE
        assert not editor._clear_btn.isEnabled()

        editor.controller.skip_note()
        assert editor._undo_btn.isEnabled()
        assert editor._clear_btn.isEnabled()
        assert editor._save_btn.isEnabled()
        assert not editor._redo_btn.isEnabled()

    def test_select_color_updates_controller(self, editor, png_factory):
        """Should pass palette choices through to the controller."""
        editor.open_image(ImageReference(png_factory(100, 100)))

        editor.select_color("#3b82f6")
        editor.select_line_width(2)

        assert editor.controller.color == "#3b82f6"
        assert editor.controller.line_width == 2


class TestBaseLayerStability:
    """Tests that editing never re-rasterizes the base image."""

    def test_base_decoded_once_across_edits(self, editor, png_factory, monkeypatch):
        """Should decode once and keep the same base image through every edit."""
        import figmark.editor.render as render

        decodes = []
        original_decode = render.decode_image

        def counting_decode(source):
            decodes.append(source)
            return original_decode(source)

        monkeypatch.setattr(render, "decode_image", counting_decode)
        editor.open_image(ImageReference(png_factory(100, 100)))
        key = editor.base_layer.image.cacheKey()
        controller = editor.controller

        draw_rect(editor)
        controller.save_note("note")
        controller.pointer_move(QPointF(30, 25))
        controller.undo()
        controller.redo()
        controller.pointer_move(QPointF(90, 90))
        controller.clear_all()

        assert len(decodes) == 1
        assert editor.base_layer.image.cacheKey() == key
        assert editor.base_layer.image.pixelColor(30, 10).name() == "#ffffff"


class TestSaveWithOpenNote:
    """Tests for saving while the note editor is open."""

    def test_typed_note_reaches_export(self, png_factory):
        """Should commit the note being typed before flattening."""
        received = []
        editor = AnnotationEditorWidget(
            on_save=lambda png, uri, annotations: received.append(annotations),
            max_size=(400, 300),
        )
        editor.open_image(ImageReference(png_factory(100, 100)))
        draw_rect(editor)
        assert editor.controller.mode == EditorMode.EDITING_NOTE
        editor._note_edit.setText("Nucleus")

        assert editor.save()

        assert received[0][0]["text"] == "Nucleus"
        editor.deleteLater()
