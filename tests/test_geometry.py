import numpy as np
import pytest

from conftest import make_buffer, numbered_buffer
from pixeledit.errors import InvalidParameter
from pixeledit.models.adjustments import Adjustments
from pixeledit.services.geometry_service import GeometryService

service = GeometryService()
TRANSPARENT = (0, 0, 0, 0)


def test_identity_compose_is_a_copy(numbered):
    out = service.compose(numbered, Adjustments())
    assert out is not numbered
    assert np.array_equal(out.samples, numbered.samples)


def test_quarter_turn_matches_clockwise_rotation(numbered):
    out = service.compose(numbered, Adjustments(rotation=90))
    assert np.array_equal(out.samples, np.rot90(numbered.samples, -1))


def test_full_turn_is_identity(numbered):
    out = service.compose(numbered, Adjustments(rotation=720))
    assert np.array_equal(out.samples, numbered.samples)


def test_half_turn(numbered):
    out = service.compose(numbered, Adjustments(rotation=180))
    assert np.array_equal(out.samples, numbered.samples[::-1, ::-1])


def test_rotate_and_half_scale_leaves_transparent_frame(numbered):
    src = numbered.samples
    out = service.compose(numbered, Adjustments(rotation=90, scale=50)).samples
    assert np.array_equal(out[1, 1], src[3, 1])
    assert np.array_equal(out[1, 2], src[1, 1])
    assert np.array_equal(out[2, 1], src[3, 3])
    assert np.array_equal(out[2, 2], src[1, 3])
    for y, x in [(0, 0), (0, 3), (3, 0), (3, 3), (0, 1), (2, 3)]:
        assert tuple(out[y, x]) == TRANSPARENT


def test_double_scale_samples_the_center(numbered):
    out = service.compose(numbered, Adjustments(scale=200)).samples
    assert out[..., 0].tolist() == [[1, 1, 2, 2]] * 4
    assert out[:, 0, 1].tolist() == [1, 1, 2, 2]


def test_canvas_keeps_source_dimensions():
    src = numbered_buffer(6, 3)
    out = service.compose(src, Adjustments(rotation=90))
    assert (out.width, out.height) == (6, 3)


def test_flip_flags_mirror(numbered):
    h = service.compose(numbered, Adjustments(flip_horizontal=True))
    v = service.compose(numbered, Adjustments(flip_vertical=True))
    assert np.array_equal(h.samples, numbered.samples[:, ::-1])
    assert np.array_equal(v.samples, numbered.samples[::-1])


def test_destructive_flip(numbered):
    assert np.array_equal(service.flip(numbered, "horizontal").samples, numbered.samples[:, ::-1])
    assert np.array_equal(service.flip(numbered, "vertical").samples, numbered.samples[::-1])
    with pytest.raises(InvalidParameter):
        service.flip(numbered, "diagonal")


def test_zero_area_compose():
    empty = make_buffer(0, 0)
    assert service.compose(empty, Adjustments(rotation=45)).is_empty


def test_resize_cover_crops_center():
    src = numbered_buffer(8, 4)
    out = service.resize(src, 4, 4, "cover")
    assert (out.width, out.height) == (4, 4)
    assert out.samples[0, :, 0].tolist() == [2, 3, 4, 5]


def test_resize_contain_pads_with_transparency():
    src = make_buffer(8, 4, (10, 20, 30, 255))
    out = service.resize(src, 4, 4, "contain")
    assert (out.width, out.height) == (4, 4)
    assert tuple(out.samples[0, 0]) == TRANSPARENT
    assert tuple(out.samples[1, 0]) == (10, 20, 30, 255)


def test_resize_never_enlarges(numbered):
    out = service.resize(numbered, 8, 8, "cover")
    assert (out.width, out.height) == (4, 4)


@pytest.mark.parametrize("width,height,fit", [(0, 4, "cover"), (4, None, "cover"), (4, 4, "stretch")])
def test_resize_rejects_bad_arguments(numbered, width, height, fit):
    with pytest.raises(InvalidParameter):
        service.resize(numbered, width, height, fit)


def test_watermark_blends_bottom_right():
    base = make_buffer(4, 4, (0, 0, 0, 255))
    mark = make_buffer(2, 2, (255, 255, 255, 255))
    out = service.composite_watermark(base, mark, opacity=0.5).samples
    assert tuple(out[3, 3]) == (128, 128, 128, 255)
    assert tuple(out[2, 2]) == (128, 128, 128, 255)
    assert tuple(out[1, 1]) == (0, 0, 0, 255)


def test_watermark_rejects_negative_opacity():
    with pytest.raises(InvalidParameter):
        service.composite_watermark(make_buffer(2, 2), make_buffer(1, 1), opacity=-0.1)
