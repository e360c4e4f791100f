import numpy as np
import pytest

from conftest import make_buffer
from pixeledit.errors import InvalidParameter, UnsupportedOperation
from pixeledit.services.filter_catalog_service import FilterCatalogService

catalog = FilterCatalogService()


def test_catalog_names():
    assert set(catalog.names()) == {
        "grayscale", "sepia", "invert", "vintage", "cool", "blur", "sharpen", "edge",
    }


def test_invert_twice_is_identity(noisy_buffer):
    twice = catalog.apply("invert", catalog.apply("invert", noisy_buffer))
    assert np.array_equal(twice.samples, noisy_buffer.samples)


def test_grayscale_leaves_gray_unchanged(gray_buffer):
    out = catalog.apply("grayscale", gray_buffer)
    assert np.array_equal(out.samples, gray_buffer.samples)


def test_grayscale_uses_luma_weights():
    out = catalog.apply("grayscale", make_buffer(1, 1, (100, 200, 60, 255)))
    # 0.3*100 + 0.59*200 + 0.11*60 = 154.6
    assert tuple(out.samples[0, 0]) == (155, 155, 155, 255)


def test_sepia_on_mid_gray(gray_buffer):
    out = catalog.apply("sepia", gray_buffer)
    assert tuple(out.samples[0, 0]) == (173, 154, 120, 255)


def test_sepia_clamps_bright_pixels():
    out = catalog.apply("sepia", make_buffer(1, 1, (255, 255, 255, 255)))
    assert out.samples[0, 0, 0] == 255


def test_vintage_and_cool_shift_channels(gray_buffer):
    assert tuple(catalog.apply("vintage", gray_buffer).samples[0, 0, :3]) == (158, 138, 108)
    assert tuple(catalog.apply("cool", gray_buffer).samples[0, 0, :3]) == (108, 138, 148)


def test_half_intensity_blends():
    out = catalog.apply("invert", make_buffer(1, 1, (0, 100, 255, 255)), 0.5)
    assert tuple(out.samples[0, 0, :3]) == (128, 128, 128)


@pytest.mark.parametrize("name", ["grayscale", "sepia", "invert", "vintage", "cool"])
def test_zero_intensity_is_identity(noisy_buffer, name):
    out = catalog.apply(name, noisy_buffer, 0.0)
    assert np.array_equal(out.samples, noisy_buffer.samples)


@pytest.mark.parametrize("name", catalog.names())
def test_alpha_preserved(noisy_buffer, name):
    out = catalog.apply(name, noisy_buffer)
    assert np.array_equal(out.samples[..., 3], noisy_buffer.samples[..., 3])


def test_blur_pass_count_option(noisy_buffer):
    once = catalog.apply("blur", noisy_buffer, passes=1)
    thrice = catalog.apply("blur", noisy_buffer, passes=3)
    assert not np.array_equal(once.samples, thrice.samples)


def test_unknown_filter():
    with pytest.raises(UnsupportedOperation):
        catalog.apply("posterize", make_buffer(2, 2))


@pytest.mark.parametrize("intensity", [-0.1, 1.5, "strong"])
def test_intensity_out_of_range(intensity):
    with pytest.raises(InvalidParameter):
        catalog.apply("sepia", make_buffer(2, 2), intensity)


def test_partial_sepia_clamps_after_blending():
    # Toned red is 270.2; half of it plus half the original is 235.1.
    out = catalog.apply("sepia", make_buffer(1, 1, (200, 200, 200, 255)), 0.5)
    assert tuple(out.samples[0, 0]) == (235, 220, 194, 255)
