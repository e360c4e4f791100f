import numpy as np
import pytest

from conftest import make_buffer, numbered_buffer
from pixeledit.errors import InvalidParameter, UnsupportedOperation
from pixeledit.models.adjustments import Adjustments
from pixeledit.pipeline.edit_session import EditSession
from pixeledit.services.color_adjustment_service import ColorAdjustmentService
from pixeledit.services.filter_catalog_service import FilterCatalogService
from pixeledit.services.history_service import HistoryService


@pytest.fixture
def session(noisy_buffer):
    return EditSession(noisy_buffer)


def test_session_requires_an_image():
    session = EditSession()
    assert not session.is_loaded
    with pytest.raises(InvalidParameter):
        session.adjust(brightness=10)
    with pytest.raises(InvalidParameter):
        session.current


def test_load_starts_clean(session, noisy_buffer):
    assert np.array_equal(session.current.samples, noisy_buffer.samples)
    assert session.adjustments == Adjustments()
    assert not session.can_undo()
    assert not session.can_redo()


def test_source_is_isolated_from_caller(noisy_buffer):
    session = EditSession(noisy_buffer)
    before = noisy_buffer.samples.copy()
    noisy_buffer.samples[...] = 0
    assert np.array_equal(session.current.samples, before)


def test_current_cannot_be_written(session):
    with pytest.raises(ValueError):
        session.current.samples[0, 0] = 0


def test_undo_then_redo_restores_exactly(session, noisy_buffer):
    edited = session.adjust(brightness=40, hue=30)
    assert session.undo()
    assert np.array_equal(session.current.samples, noisy_buffer.samples)
    assert session.adjustments == Adjustments()
    assert session.redo()
    assert np.array_equal(session.current.samples, edited.samples)
    assert session.adjustments.brightness == 40
    assert not session.redo()


def test_rejected_edit_leaves_no_trace(session):
    session.adjust(contrast=10)
    before = session.current.samples.copy()
    entries = len(session.history)
    with pytest.raises(InvalidParameter):
        session.adjust(brightness=500)
    with pytest.raises(UnsupportedOperation):
        session.apply_filter("posterize")
    with pytest.raises(InvalidParameter):
        session.flip("sideways")
    assert len(session.history) == entries
    assert np.array_equal(session.current.samples, before)
    assert session.adjustments.contrast == 10


def test_new_edit_after_undo_drops_redo(session):
    session.adjust(brightness=10)
    session.adjust(brightness=20)
    session.undo()
    session.adjust(saturation=-50)
    assert not session.can_redo()
    assert session.adjustments.brightness == 10


def test_adjustments_rerender_from_source(session, noisy_buffer):
    session.adjust(brightness=100)
    session.adjust(brightness=0)
    assert np.array_equal(session.current.samples, noisy_buffer.samples)


def test_filters_survive_later_adjustments(session, noisy_buffer):
    session.apply_filter("invert")
    session.adjust(brightness=10)
    expected = FilterCatalogService().apply(
        "invert", ColorAdjustmentService().apply(noisy_buffer, Adjustments(brightness=10))
    )
    assert np.array_equal(session.current.samples, expected.samples)
    assert [f.name for f in session.filters] == ["invert"]


def test_undo_of_filter_drops_it_from_replay(session, noisy_buffer):
    session.apply_filter("sepia", 0.5)
    session.undo()
    session.adjust(brightness=10)
    expected = ColorAdjustmentService().apply(noisy_buffer, Adjustments(brightness=10))
    assert np.array_equal(session.current.samples, expected.samples)


def test_rotations_accumulate():
    session = EditSession(numbered_buffer(4, 4))
    session.rotate(90)
    out = session.rotate(90)
    assert session.adjustments.rotation == 180
    assert np.array_equal(out.samples, numbered_buffer(4, 4).samples[::-1, ::-1])


def test_flip_toggles():
    src = numbered_buffer(4, 4)
    session = EditSession(src)
    assert np.array_equal(session.flip("horizontal").samples, src.samples[:, ::-1])
    assert np.array_equal(session.flip("horizontal").samples, src.samples)


def test_resize_replaces_source_and_undoes():
    session = EditSession(make_buffer(8, 6, (10, 20, 30, 255)))
    out = session.resize(4, 3, "fill")
    assert (out.width, out.height) == (4, 3)
    assert (session.source.width, session.source.height) == (4, 3)
    session.undo()
    assert (session.current.width, session.current.height) == (8, 6)


def test_reset_returns_to_loaded_image(session, noisy_buffer):
    session.adjust(brightness=30)
    session.apply_filter("grayscale")
    session.flip("vertical")
    out = session.reset()
    assert np.array_equal(out.samples, noisy_buffer.samples)
    assert session.adjustments == Adjustments()
    assert session.filters == ()
    assert not session.can_undo()


def test_history_limit_is_honoured(noisy_buffer):
    session = EditSession(noisy_buffer, history_service=HistoryService(limit=3))
    for value in (10, 20, 30, 40):
        session.adjust(brightness=value)
    assert len(session.history) == 3
    assert session.undo() and session.undo()
    assert not session.undo()
    assert session.adjustments.brightness == 20


def test_descriptors_route_through_history(session):
    session.apply({"kind": "brightness", "parameters": {"delta": 10}})
    session.apply({"kind": "brightness", "parameters": {"delta": 10}})
    session.apply({"kind": "grayscale", "parameters": {"intensity": 0.5}})
    assert session.adjustments.brightness == 20
    assert len(session.history) == 4


def test_export_png(session):
    assert session.export("png").startswith(b"\x89PNG")
    assert session.to_data_url("webp").startswith("data:image/webp;base64,")


def test_wrongly_typed_edits_leave_no_trace(session):
    before = session.current.samples.copy()
    entries = len(session.history)
    with pytest.raises(InvalidParameter):
        session.adjust(brightness="10")
    with pytest.raises(InvalidParameter):
        session.rotate("90")
    with pytest.raises(InvalidParameter):
        session.rotate(45.5)
    with pytest.raises(InvalidParameter):
        session.set_scale(150.0)
    assert len(session.history) == entries
    assert session.adjustments == Adjustments()
    assert np.array_equal(session.current.samples, before)
