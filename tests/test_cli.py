import json

from PIL import Image

from spritesplitter import cli
from spritesplitter.core import VideoMetadata


def _write_png(path, size=(8, 8), color=(10, 20, 30, 255)):
    Image.new("RGBA", size, color).save(path)
    return path


def _write_gif(path, count=3):
    frames = [Image.new("RGB", (4, 4), (index * 60, 0, 0)) for index in range(count)]
    frames[0].save(path, format="GIF", save_all=True, append_images=frames[1:], duration=50, loop=0)
    return path


def test_build_parser_creates_arguments():
    parser = cli.build_parser()
    args = parser.parse_args(
        ["slice", "sheet.png", "out", "--rows", "2", "--columns", "3", "--stop", "0:#000000", "--dry-run"]
    )
    assert args.command == "slice"
    assert args.input.name == "sheet.png"
    assert (args.rows, args.columns) == (2, 3)
    assert args.stops == ["0:#000000"]
    assert args.dry_run is True


def test_sheet_parser_defaults_to_twelve_fps():
    args = cli.build_parser().parse_args(["sheet", "clip.mp4", "out.png"])
    assert args.fps == 12
    assert args.seek_timeout == 1.0


def test_main_dry_run_returns_zero():
    assert cli.main(["sheet", "input.mp4", "out.png", "--dry-run"]) == 0


def test_slice_writes_frames(tmp_path):
    source = _write_png(tmp_path / "sheet.png")
    out = tmp_path / "frames"

    assert cli.main(["slice", str(source), str(out), "--rows", "2", "--columns", "2"]) == 0
    written = sorted(path.name for path in out.iterdir())
    assert written == ["frame_000.png", "frame_001.png", "frame_002.png", "frame_003.png"]
    with Image.open(out / "frame_003.png") as frame:
        assert frame.size == (4, 4)


def test_slice_with_gradient_and_spine_export(tmp_path):
    source = _write_png(tmp_path / "hero.png", color=(255, 255, 255, 255))
    out = tmp_path / "spine"

    code = cli.main(
        [
            "slice", str(source), str(out), "--rows", "1", "--columns", "2",
            "--stop", "0:#000000", "--stop", "100:#0000ff", "--spine", "--trim",
        ]
    )

    assert code == 0
    skeleton = json.loads((out / "hero.json").read_text(encoding="utf-8"))
    assert len(skeleton["animations"]["animation"]["slots"]["sprite_slot"]["attachment"]) == 2
    with Image.open(out / "images" / "fx" / "frame_000.png") as frame:
        assert frame.convert("RGBA").getpixel((0, 0)) == (0, 0, 255, 255)


def test_single_gradient_stop_is_reported(tmp_path, capsys):
    source = _write_png(tmp_path / "sheet.png")

    code = cli.main(["slice", str(source), str(tmp_path / "out"), "--stop", "0:#000000"])

    assert code == 1
    assert "config error" in capsys.readouterr().err


def test_sheet_from_gif_writes_png_and_manifest(tmp_path, capsys):
    source = _write_gif(tmp_path / "anim.gif")
    manifest = tmp_path / "anim.json"

    assert cli.main(["sheet", str(source), str(tmp_path / "anim_sheet"), "--manifest", str(manifest)]) == 0
    with Image.open(tmp_path / "anim_sheet.png") as sheet:
        assert sheet.size == (8, 8)
    assert json.loads(manifest.read_text(encoding="utf-8"))["meta"]["frameCount"] == 3
    assert "3 frames in 2x2" in capsys.readouterr().out


def test_trim_command(tmp_path, capsys):
    image = Image.new("RGBA", (6, 6), (0, 0, 0, 0))
    image.putpixel((2, 3), (1, 2, 3, 255))
    source = tmp_path / "frame.png"
    image.save(source)

    assert cli.main(["trim", str(source), str(tmp_path / "trimmed.png")]) == 0
    assert "1x1 at offset (2, 3)" in capsys.readouterr().out


def test_missing_input_is_a_decode_error(tmp_path, capsys):
    code = cli.main(["slice", str(tmp_path / "missing.png"), str(tmp_path / "out")])

    assert code == 1
    assert "decode error" in capsys.readouterr().err


def test_probe_reports_planned_frame_count(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.video_loader,
        "load_metadata",
        lambda path: VideoMetadata(width=320, height=240, fps=30.0, duration_seconds=2.0),
    )

    assert cli.main(["probe", "clip.mp4"]) == 0
    assert "320x240 @ 30fps, 2.00s -> 24 frames at 12fps" in capsys.readouterr().out
