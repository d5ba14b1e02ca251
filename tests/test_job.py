"""Tests for scene loading, the Job orchestrator and the CLI."""

import json
import logging

import pytest
from PIL import Image

from lasercam.__main__ import main
from lasercam.core.errors import EmptyLayerError
from lasercam.core.items import Group, RasterImage, item_from_dict, item_to_dict
from lasercam.core.job import Job
from lasercam.core.layer import EngraveSettings, PrintingMethod
from lasercam.core.scene import Scene, load_scene


SCENE = {
    "canvas": {"width": 100, "height": 100},
    "platform": {"width": 100, "height": 100},
    "layers": [
        {"id": "cut", "name": "Cut", "printingMethod": "engrave", "power": 40},
        {"id": "scan", "name": "Scan", "printingMethod": "scan", "lineDensity": 1.0},
        {"id": "hidden", "name": "Hidden", "printingMethod": "engrave", "isVisible": False},
        {"id": "empty", "name": "Empty", "printingMethod": "engrave", "isVisible": False},
    ],
    "items": [
        {"type": "CIRCLE", "x": 50, "y": 50, "layerId": "cut", "parameters": {"radius": 20}},
        {"type": "RECTANGLE", "x": 50, "y": 50, "layerId": "scan",
         "parameters": {"width": 10, "height": 10}},
        {"type": "TEXT", "x": 10, "y": 10, "layerId": "hidden", "text": "draft"},
    ],
}


@pytest.fixture
def scene_file(tmp_path):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(SCENE))
    return path


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    # Preferences live under a throwaway home; CLI log handlers are dropped
    monkeypatch.setenv("HOME", str(tmp_path))
    yield
    logging.getLogger("lasercam").handlers.clear()


# ---------------------------------------------------------------------------
# Scene files
# ---------------------------------------------------------------------------


class TestScene:
    def test_load(self, scene_file):
        scene = load_scene(scene_file)
        assert [l.id for l in scene.layers] == ["cut", "scan", "hidden", "empty"]
        assert scene.layer("scan").printing_method is PrintingMethod.SCAN
        assert scene.layer("scan").line_density == 1.0
        assert len(scene.items) == 3
        assert scene.canvas_width == 100

    def test_canvas_defaults_to_platform(self):
        scene = Scene.from_dict({"platform": {"width": 200, "height": 150}})
        assert (scene.canvas_width, scene.canvas_height) == (200, 150)

    def test_platform_fallback(self, tmp_path):
        path = tmp_path / "bare.json"
        path.write_text(json.dumps({"items": []}))
        scene = load_scene(path, platform_size=(300, 200))
        assert (scene.platform_width, scene.platform_height) == (300, 200)
        assert scene.canvas_width == 300

    def test_declared_platform_wins(self, scene_file):
        assert load_scene(scene_file, platform_size=(300, 200)).platform_width == 100

    def test_unknown_layer(self, scene_file):
        with pytest.raises(KeyError):
            load_scene(scene_file).layer("nope")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_scene(tmp_path / "missing.json")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_scene(path)

    def test_unknown_item_type(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"items": [{"type": "HEXAGON"}]}))
        with pytest.raises(ValueError):
            load_scene(path)

    def test_relative_image_paths_resolved(self, tmp_path):
        Image.new("RGB", (4, 4), (0, 0, 0)).save(tmp_path / "logo.png")
        data = {"items": [{"type": "GROUP", "children": [
            {"type": "IMAGE", "href": "logo.png", "width": 4, "height": 4},
        ]}]}
        path = tmp_path / "scene.json"
        path.write_text(json.dumps(data))
        image = load_scene(path).items[0].children[0]
        assert image.href == str(tmp_path / "logo.png")

    def test_round_trip(self, scene_file):
        scene = load_scene(scene_file)
        again = Scene.from_dict(scene.to_dict())
        assert again == scene


class TestItemDicts:
    def test_vector_source_image(self):
        d = {
            "type": "IMAGE", "href": "data:image/png;base64,", "width": 100, "height": 50,
            "vectorSource": {
                "parsedItems": [{"type": "CIRCLE", "parameters": {"radius": 5}}],
                "originalDimensions": {"width": 200, "height": 200},
            },
        }
        image = item_from_dict(d)
        assert isinstance(image, RasterImage)
        assert image.has_vector_source
        assert image.vector_source.original_width == 200
        assert item_from_dict(item_to_dict(image)) == image

    def test_group_children(self):
        group = item_from_dict({"type": "GROUP", "x": 5, "children": [
            {"type": "DRAWING", "points": [{"x": 0, "y": 0}, [1, 2]], "fillColor": "#fff"},
        ]})
        assert isinstance(group, Group)
        assert group.children[0].points == [(0.0, 0.0), (1.0, 2.0)]


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------


class TestJob:
    def test_engrave_layer(self, scene_file):
        program = Job.load(scene_file).export_layer("cut")
        assert "M3 S400" in program
        assert "G02 X70 Y50 I-20 J0 F1000" in program

    def test_scan_layer(self, scene_file):
        program = Job.load(scene_file).export_layer("scan")
        assert "M4 ; Enable laser (variable power mode)" in program
        assert "; Resolution: 1 mm/pixel (100x100 pixels)" in program

    def test_explicit_settings_win(self, scene_file):
        job = Job.load(scene_file)
        lines = job.export_layer_lines("cut", engrave_settings=EngraveSettings(power=10))
        assert "M3 S100" in lines

    def test_export_all_skips_hidden_layers(self, scene_file):
        programs = Job.load(scene_file).export_all()
        assert set(programs) == {"cut", "scan"}

    def test_unknown_layer(self, scene_file):
        with pytest.raises(KeyError):
            Job.load(scene_file).export_layer("nope")

    def test_empty_layer(self, scene_file):
        with pytest.raises(EmptyLayerError):
            Job.load(scene_file).export_layer("empty")

    def test_exports_are_independent(self, scene_file):
        job = Job.load(scene_file)
        first = job.export_layer("cut")
        job.export_layer("scan")
        assert job.export_layer("cut") == first


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_exports_visible_layers(self, scene_file, tmp_path):
        out_dir = tmp_path / "out"
        assert main([str(scene_file), "-o", str(out_dir)]) == 0
        assert sorted(p.name for p in out_dir.iterdir()) == [
            "scene_cut.gcode", "scene_scan.gcode",
        ]

    def test_single_layer_to_file(self, scene_file, tmp_path):
        out = tmp_path / "cut.gcode"
        assert main([str(scene_file), "--layer", "cut", "-o", str(out), "--passes", "2"]) == 0
        text = out.read_text()
        assert "; Pass 2 of 2" in text
        assert text.endswith("M30 ; Program end\n")

    def test_missing_scene(self, tmp_path):
        assert main([str(tmp_path / "nope.json")]) == 1

    def test_unknown_layer(self, scene_file):
        assert main([str(scene_file), "--layer", "nope"]) == 1

    def test_validation_failure(self, scene_file, tmp_path):
        out = tmp_path / "cut.gcode"
        argv = [str(scene_file), "--layer", "cut", "-o", str(out), "--platform", "20", "20"]
        assert main(argv) == 1
        assert not out.exists()

    def test_save_prefs(self, scene_file, tmp_path):
        argv = [str(scene_file), "--layer", "cut", "-o", str(tmp_path / "cut.gcode"),
                "--platform", "300", "250", "--burn-speed", "1500", "--save-prefs"]
        assert main(argv) == 0
        saved = json.loads((tmp_path / ".lasercam" / "settings.json").read_text())
        assert saved["platform_width"] == 300
        assert saved["platform_height"] == 250
        assert saved["burn_speed"] == 1500

    def test_prefs_platform_used_when_scene_has_none(self, tmp_path):
        prefs = tmp_path / ".lasercam" / "settings.json"
        prefs.parent.mkdir()
        prefs.write_text(json.dumps({"platform_width": 20, "platform_height": 20}))
        scene = {k: v for k, v in SCENE.items() if k != "platform"}
        path = tmp_path / "bare.json"
        path.write_text(json.dumps(scene))
        # The 100 mm canvas circle lands outside a 20 mm platform
        assert main([str(path), "--layer", "cut", "-o", str(tmp_path / "cut.gcode")]) == 1
