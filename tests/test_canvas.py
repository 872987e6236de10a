import numpy as np
import pytest

from pixelsimage.models.image_source import DecodedImage
from pixelsimage.models.pixel_buffer import PixelBuffer
from pixelsimage.repositories.canvas import Surface


def pixels_of(surface: Surface) -> np.ndarray:
    return np.array(surface.image, dtype=np.uint8)


def test_default_surface_is_transparent():
    surface = Surface()
    assert (surface.width, surface.height) == (300, 150)
    assert not pixels_of(surface).any()


def test_context_is_a_single_2d_object():
    surface = Surface(2, 2)
    context = surface.get_context("2d")
    assert context is surface.get_context("2d")
    assert surface.get_context("webgl") is None


def test_put_then_get_round_trips_including_alpha(random_buffer):
    surface = Surface(random_buffer.width, random_buffer.height)
    context = surface.get_context("2d")
    context.put_image_data(random_buffer, 0, 0)

    read = context.get_image_data(0, 0, surface.width, surface.height)
    np.testing.assert_array_equal(read.pixels, random_buffer.pixels)
    assert read.pixels is not random_buffer.pixels


def test_put_image_data_ignores_transform(opaque_buffer):
    surface = Surface(opaque_buffer.width, opaque_buffer.height)
    context = surface.get_context("2d")
    context.scale(-1, 1)
    context.put_image_data(opaque_buffer, 0, 0)
    np.testing.assert_array_equal(pixels_of(surface), opaque_buffer.pixels)


def test_get_image_data_outside_reads_transparent(opaque_buffer):
    surface = Surface(opaque_buffer.width, opaque_buffer.height)
    context = surface.get_context("2d")
    context.put_image_data(opaque_buffer, 0, 0)

    read = context.get_image_data(-1, 0, 2, 1)
    assert read.pixels[0, 0].tolist() == [0, 0, 0, 0]
    np.testing.assert_array_equal(read.pixels[0, 1], opaque_buffer.pixels[0, 0])


def test_resize_clears_pixels_and_state(opaque_buffer):
    surface = Surface(opaque_buffer.width, opaque_buffer.height)
    context = surface.get_context("2d")
    context.put_image_data(opaque_buffer, 0, 0)
    context.translate(3, 1)
    context.fill_style = (255, 0, 0, 255)

    surface.width = 6
    assert (surface.width, surface.height) == (6, opaque_buffer.height)
    assert not pixels_of(surface).any()
    assert context.transform == (1.0, 1.0, 0.0, 0.0)
    assert context.fill_style == (0, 0, 0, 255)


def test_clear_and_fill_rect():
    surface = Surface(4, 4)
    context = surface.get_context("2d")
    context.fill_style = (10, 20, 30, 255)
    context.fill_rect(0, 0, 4, 4)
    context.clear_rect(1, 1, 2, 2)

    pixels = pixels_of(surface)
    assert pixels[0, 0].tolist() == [10, 20, 30, 255]
    assert pixels[1, 1].tolist() == [0, 0, 0, 0]
    assert pixels[2, 2].tolist() == [0, 0, 0, 0]
    assert pixels[3, 3].tolist() == [10, 20, 30, 255]


def test_draw_image_mirrored_by_negative_scale(opaque_buffer):
    source = Surface(opaque_buffer.width, opaque_buffer.height)
    source.get_context("2d").put_image_data(opaque_buffer, 0, 0)

    target = Surface(opaque_buffer.width, opaque_buffer.height)
    context = target.get_context("2d")
    context.scale(-1, 1)
    context.draw_image(source, -source.width, 0)

    np.testing.assert_array_equal(pixels_of(target), opaque_buffer.pixels[:, ::-1])


def test_no_repeat_pattern_paints_image_once(opaque_buffer):
    image = DecodedImage(opaque_buffer.width, opaque_buffer.height, opaque_buffer.pixels.copy())
    surface = Surface(opaque_buffer.width + 2, opaque_buffer.height)
    context = surface.get_context("2d")
    context.fill_style = context.create_pattern(image, "no-repeat")
    context.fill_rect(0, 0, surface.width, surface.height)

    pixels = pixels_of(surface)
    np.testing.assert_array_equal(pixels[:, :opaque_buffer.width], opaque_buffer.pixels)
    assert not pixels[:, opaque_buffer.width:].any()


def test_repeat_pattern_tiles_from_origin():
    tile = np.zeros((2, 2, 4), dtype=np.uint8)
    tile[..., 3] = 255
    tile[0, 0, 0] = 200
    surface = Surface(4, 4)
    context = surface.get_context("2d")
    context.fill_style = context.create_pattern(DecodedImage(2, 2, tile), None)
    context.fill_rect(1, 1, 3, 3)

    pixels = pixels_of(surface)
    assert pixels[0, 0].tolist() == [0, 0, 0, 0]
    assert pixels[2, 2, 0] == 200
    assert pixels[1, 1, 0] == 0
    assert pixels[3, 3, 3] == 255


def test_draw_image_composites_source_over():
    surface = Surface(1, 1)
    context = surface.get_context("2d")
    context.fill_style = (0, 0, 255, 255)
    context.fill_rect(0, 0, 1, 1)
    transparent = DecodedImage(1, 1, np.zeros((1, 1, 4), dtype=np.uint8))
    context.draw_image(transparent, 0, 0)
    assert pixels_of(surface)[0, 0].tolist() == [0, 0, 255, 255]


def test_invalid_arguments():
    context = Surface(2, 2).get_context("2d")
    with pytest.raises(ValueError):
        context.scale(0, 1)
    with pytest.raises(ValueError):
        context.create_pattern(Surface(1, 1), "diagonal")
    with pytest.raises(ValueError):
        context.get_image_data(0, 0, -1, 1)
    with pytest.raises(TypeError):
        context.draw_image(PixelBuffer.blank(1, 1))
