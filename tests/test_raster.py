"""Tests for platform rasterization, grayscale conversion and halftoning."""

import base64
import io

import numpy as np
import pytest
from PIL import Image
from shapely.geometry import Polygon

from lasercam.core.dither import WHITE_THRESHOLD, flip_horizontal, flip_vertical, halftone, to_grayscale
from lasercam.core.errors import ImageLoadError
from lasercam.core.items import FreehandPath, ParametricShape, RasterImage, ShapeType, TextLabel
from lasercam.core.layer import ScanSettings
from lasercam.core.outlines import polygon_contour, polyline_contour
from lasercam.core.toolpath.utils import ensure_polygon, iter_polygons, silhouette
from lasercam.core.raster import (
    build_pixel_grid,
    decode_image,
    load_images,
    platform_pixels,
    rasterize_items,
)


@pytest.fixture
def settings() -> ScanSettings:
    return ScanSettings(line_density=1.0)


def _png_bytes(color, size=(10, 10)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _grid(items, settings, platform=100, canvas=None):
    return build_pixel_grid(items, settings, platform, platform, canvas, canvas)


# ---------------------------------------------------------------------------
# Grayscale and mirroring
# ---------------------------------------------------------------------------


class TestGrayscale:
    def test_black_and_white(self):
        assert to_grayscale(Image.new("RGB", (2, 2), (0, 0, 0))).max() == 0
        assert to_grayscale(Image.new("RGB", (2, 2), (255, 255, 255))).min() == 255

    def test_neutral_gray_is_preserved(self):
        data = to_grayscale(Image.new("RGB", (1, 1), (128, 128, 128)))
        assert data[0, 0] == 128

    def test_negative_inverts(self):
        data = to_grayscale(Image.new("RGB", (2, 2), (255, 255, 255)), negative=True)
        assert data.max() == 0

    def test_output_dtype_and_shape(self):
        data = to_grayscale(Image.new("RGB", (5, 3), (10, 20, 30)))
        assert data.shape == (3, 5)
        assert data.dtype == np.int16

    def test_flips_in_place(self):
        data = np.array([[1, 2], [3, 4]], dtype=np.int16)
        flip_horizontal(data)
        assert data.tolist() == [[2, 1], [4, 3]]
        flip_vertical(data)
        assert data.tolist() == [[4, 3], [2, 1]]


def _reference_halftone(data):
    """Pixel-by-pixel protected error diffusion, for comparison."""
    kernel = ((0, 0, 0, 7, 5), (3, 5, 7, 5, 3), (1, 3, 5, 3, 1))
    height, width = data.shape
    work = data.astype(np.float64)
    white = data >= WHITE_THRESHOLD
    out = np.empty_like(data)
    for y in range(height):
        for x in range(width):
            old = work[y, x]
            new = 0.0 if old < 128 else 255.0
            out[y, x] = new
            err = old - new
            if err == 0:
                continue
            for ky, row in enumerate(kernel):
                for kx, weight in enumerate(row):
                    ty, tx = y + ky, x + kx - 2
                    if weight == 0 or ty >= height or not 0 <= tx < width or white[ty, tx]:
                        continue
                    work[ty, tx] = min(255.0, max(0.0, work[ty, tx] + err * weight / 48))
    out[white] = 255
    return out


class TestHalftone:
    def test_output_is_binary_and_background_protected(self):
        data = np.full((8, 8), 255, dtype=np.int16)
        data[2:6, 2:6] = 100
        data[0, 0] = 230
        halftone(data)
        assert set(np.unique(data).tolist()) <= {0, 255}
        assert data[0, 0] == 255
        # Background around the block never receives diffused error
        assert (data[0, :] == 255).all()
        assert (data[:, 7] == 255).all()
        assert (data[2:6, 2:6] == 0).any()

    def test_black_stays_black(self):
        data = np.zeros((4, 4), dtype=np.int16)
        halftone(data)
        assert (data == 0).all()

    def test_near_white_becomes_white(self):
        data = np.full((3, 3), WHITE_THRESHOLD, dtype=np.int16)
        halftone(data)
        assert (data == 255).all()

    def test_near_white_pixels_spread_error(self):
        # 130 alone would round up; the 230 neighbour pushes it below 128
        data = np.array([[230, 130]], dtype=np.int16)
        halftone(data)
        assert data.tolist() == [[255, 0]]

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_matches_pixel_by_pixel_diffusion(self, seed):
        data = np.random.default_rng(seed).integers(0, 256, (20, 30)).astype(np.int16)
        expected = _reference_halftone(data.copy())
        halftone(data)
        assert np.array_equal(data, expected)

    def test_large_grid(self):
        data = np.tile(np.linspace(0, 255, 600), (600, 1)).astype(np.int16)
        halftone(data)
        assert set(np.unique(data).tolist()) == {0, 255}
        assert (data[:, -50:] == 255).all()


# ---------------------------------------------------------------------------
# Rasterization
# ---------------------------------------------------------------------------


class TestRasterize:
    def test_platform_pixels(self):
        assert platform_pixels(400, 300, 0.1) == (4000, 3000)
        with pytest.raises(ValueError):
            platform_pixels(400, 300, 0)

    def test_empty_layer_is_white(self, settings):
        grid = _grid([], settings)
        assert grid.width == 100 and grid.height == 100
        assert grid.non_blank_count() == 0
        assert (grid.data == 255).all()

    def test_rectangle_is_filled(self, settings):
        rect = ParametricShape(ShapeType.RECTANGLE, {"width": 20, "height": 20}, x=50, y=50)
        grid = _grid([rect], settings)
        assert grid.data[50, 50] == 0
        assert grid.data[10, 10] == 255

    def test_holes_stay_white(self, settings):
        flange = ParametricShape(
            ShapeType.FLANGE,
            {"outerDiameter": 80, "innerDiameter": 30, "boltHoleCount": 0},
            x=50, y=50,
        )
        grid = _grid([flange], settings)
        assert grid.data[50, 50] == 255
        assert grid.data[50, 80] == 0

    def test_line_gets_minimum_stroke(self, settings):
        line = ParametricShape(ShapeType.LINE, {"length": 40}, x=50, y=50)
        grid = _grid([line], settings)
        assert (grid.data[48:52, 50] == 0).any()

    def test_freehand_stroke(self, settings):
        path = FreehandPath(points=[(0, 0), (30, 0)], stroke_width=4, x=20, y=40)
        grid = _grid([path], settings)
        assert (grid.data[38:42, 35] == 0).any()

    def test_text_is_not_painted(self, settings):
        grid = _grid([TextLabel(text="hello", x=50, y=50)], settings)
        assert grid.non_blank_count() == 0

    def test_canvas_is_scaled_to_platform(self, settings):
        rect = ParametricShape(ShapeType.RECTANGLE, {"width": 40, "height": 40}, x=100, y=100)
        grid = _grid([rect], settings, platform=100, canvas=200)
        assert grid.data[50, 50] == 0
        assert grid.data[80, 80] == 255

    def test_invalid_canvas_raises(self):
        with pytest.raises(ValueError):
            rasterize_items([], 100, 100, 0, 100, 1.0)

    def test_horizontal_flip_setting(self):
        rect = ParametricShape(ShapeType.RECTANGLE, {"width": 10, "height": 10}, x=10, y=50)
        grid = _grid([rect], ScanSettings(line_density=1.0, h_flipped=True))
        assert grid.data[50, 90] == 0
        assert grid.data[50, 10] == 255


class TestImages:
    def test_image_from_path(self, settings, tmp_path):
        path = tmp_path / "black.png"
        path.write_bytes(_png_bytes((0, 0, 0)))
        image = RasterImage(href=str(path), width=20, height=20, x=50, y=50)
        grid = _grid([image], settings)
        assert grid.data[50, 50] == 0
        assert grid.data[10, 10] == 255

    def test_image_from_data_url(self, settings):
        url = "data:image/png;base64," + base64.b64encode(_png_bytes((0, 0, 0))).decode()
        image = RasterImage(href=url, width=20, height=20, x=50, y=50)
        grid = _grid([image], settings)
        assert grid.data[50, 50] == 0

    def test_rotated_image(self, settings, tmp_path):
        path = tmp_path / "bar.png"
        path.write_bytes(_png_bytes((0, 0, 0), size=(40, 10)))
        image = RasterImage(href=str(path), width=40, height=10, x=50, y=50, rotation=90)
        grid = _grid([image], settings)
        # A quarter turn stands the bar upright about its center
        assert grid.data[40, 50] < 50
        assert grid.data[50, 30] == 255

    def test_oversized_image_raises(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(ImageLoadError):
            decode_image(_png_bytes((0, 0, 0), size=(10, 10)))

    def test_image_from_bytes(self):
        img = decode_image(_png_bytes((255, 0, 0), size=(3, 2)))
        assert img.mode == "RGBA"
        assert img.size == (3, 2)

    def test_missing_file_raises(self, settings, tmp_path):
        image = RasterImage(href=str(tmp_path / "nope.png"), width=10, height=10, x=5, y=5)
        with pytest.raises(ImageLoadError):
            _grid([image], settings)

    @pytest.mark.parametrize("href", [
        "data:image/png;base64,@@not-base64@@",
        "data:text/plain,hello",
    ])
    def test_bad_data_url_raises(self, href):
        with pytest.raises(ImageLoadError):
            decode_image(href)

    def test_load_images_keeps_order(self):
        images = [
            RasterImage(href=_png_bytes((0, 0, 0), size=(1, 1))),
            RasterImage(href=_png_bytes((255, 255, 255), size=(2, 2))),
        ]
        loaded = load_images(images)
        assert [im.size for im in loaded] == [(1, 1), (2, 2)]

    def test_load_images_surfaces_failure(self, tmp_path):
        images = [
            RasterImage(href=_png_bytes((0, 0, 0))),
            RasterImage(href=str(tmp_path / "missing.png")),
        ]
        with pytest.raises(ImageLoadError):
            load_images(images)


class TestSilhouette:
    def test_holes_are_subtracted(self):
        outer = polygon_contour([(0, 0), (10, 0), (10, 10), (0, 10)])
        hole = polygon_contour([(3, 3), (7, 3), (7, 7), (3, 7)])
        region = silhouette([outer, hole], lambda x, y: (x, y))
        assert region.area == pytest.approx(84)

    def test_open_contour_is_stroked(self):
        line = polyline_contour([(0, 0), (10, 0)])
        region = silhouette([line], lambda x, y: (x, y), stroke_px=2)
        assert region.bounds[1] == pytest.approx(-1)
        assert region.bounds[3] == pytest.approx(1)

    def test_invalid_polygon_is_repaired(self):
        bowtie = Polygon([(0, 0), (10, 10), (10, 0), (0, 10)])
        fixed = ensure_polygon(bowtie)
        assert fixed.is_valid
        assert len(list(iter_polygons(fixed))) == 2
