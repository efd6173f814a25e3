import json

import numpy as np
import pytest
from PIL import Image

import mandelbands.pipeline as pipeline
from mandelbands.cli import build_arg_parser, main
from mandelbands.geometry import Viewport
from mandelbands.pipeline import render_grid


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def test_parser_parses_points_and_size():
    args = build_arg_parser().parse_args(
        ["render", "--size", "1000x750", "--upper-left=-1.20,0.35", "--lower-right=-1,0.20"]
    )
    assert args.size == (1000, 750)
    assert args.upper_left == complex(-1.20, 0.35)
    assert args.lower_right == complex(-1.0, 0.20)


@pytest.mark.parametrize("bad", [["--size", "1000"], ["--size", "10x"], ["--upper-left=1.0"]])
def test_parser_rejects_malformed_arguments(bad):
    with pytest.raises(SystemExit) as info:
        build_arg_parser().parse_args(["render"] + bad)
    assert info.value.code == 2


def test_render_command_writes_png_and_manifest(tmp_path):
    rc = main([
        "--log-file=", "render", "--output", "out/mandel.png", "--size", "100x75",
        "--upper-left=-1.20,0.35", "--lower-right=-1,0.20", "--workers", "8", "--manifest", "run.json",
    ])
    assert rc == 0

    with Image.open(tmp_path / "out" / "mandel.png") as img:
        assert img.mode == "L"
        assert img.size == (100, 75)
        data = np.asarray(img).reshape(-1)
    expected = render_grid((100, 75), Viewport(complex(-1.20, 0.35), complex(-1.0, 0.20)), workers=1)
    assert np.array_equal(data, expected)

    manifest = json.loads((tmp_path / "run.json").read_text())
    assert manifest["render"]["workers"] == 8
    assert manifest["render"]["bands"] == 8
    assert sum(manifest["render"]["band_rows"]) == 75
    assert manifest["config"]["width"] == 100


def test_render_command_uses_config_file(tmp_path):
    (tmp_path / "cfg.json").write_text(json.dumps({
        "width": 24, "height": 18, "workers": 3, "limit": 50, "output": "from_config.png",
    }))
    rc = main(["--config", "cfg.json", "--log-file=", "render", "--manifest="])
    assert rc == 0
    with Image.open(tmp_path / "from_config.png") as img:
        assert img.size == (24, 18)
    assert not (tmp_path / "artifacts").exists()


def test_log_file_is_written(tmp_path):
    rc = main(["--log-file", "render.log", "render", "--size", "8x6", "--output", "a.png", "--manifest="])
    assert rc == 0
    assert "Render done" in (tmp_path / "render.log").read_text()


def test_degenerate_viewport_fails_cleanly(tmp_path):
    rc = main([
        "--log-file=", "render", "--size", "8x6", "--output", "bad.png",
        "--upper-left=-1,0.20", "--lower-right=-1.2,0.35",
    ])
    assert rc == 1
    assert not (tmp_path / "bad.png").exists()


def test_band_failure_fails_cleanly(tmp_path, monkeypatch):
    def broken(band, view, limit, max_intensity):
        raise RuntimeError("worker died")

    monkeypatch.setattr(pipeline, "render_band", broken)
    rc = main(["--log-file=", "render", "--size", "8x6", "--workers", "2", "--output", "bad.png"])
    assert rc == 1
    assert not (tmp_path / "bad.png").exists()


def test_manifest_records_band_plan(tmp_path):
    rc = main(["--log-file=", "render", "--size", "20x75", "--workers", "8", "--output", "m.png",
               "--manifest", "run.json"])
    assert rc == 0
    bands = json.loads((tmp_path / "run.json").read_text())["bands"]
    assert [b["index"] for b in bands] == list(range(8))
    assert bands[0]["rows"] == [0, 10]
    assert bands[-1]["rows"] == [70, 75]
    assert bands[-1]["bytes"] == [70 * 20, 75 * 20]
    assert bands[0]["viewport"]["upper_left"] == [-1.20, 0.35]


def test_invalid_config_value_fails_cleanly(tmp_path):
    (tmp_path / "cfg.json").write_text(json.dumps({"width": None}))
    rc = main(["--config", "cfg.json", "--log-file=", "render", "--output", "bad.png"])
    assert rc == 1
    assert not (tmp_path / "bad.png").exists()


def test_missing_config_file_fails_cleanly():
    assert main(["--config", "nope.json", "--log-file=", "render"]) == 1


def test_unwritable_output_fails_cleanly(tmp_path):
    (tmp_path / "blocker").write_text("not a directory")
    rc = main(["--log-file=", "render", "--size", "8x6", "--output", "blocker/out.png", "--manifest="])
    assert rc == 1
