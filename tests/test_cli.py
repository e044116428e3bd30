import PIL.Image
import pytest

import render as cli
from fractals import Julia, Mandelbrot, Newton


def _resolve(argv):
    parser = cli.build_parser()
    opt = parser.parse_args(argv)
    return cli.resolve_output_config(opt, parser)


def test_default_output_is_single_png(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = _resolve([])
    assert config.modes == ("image",)
    assert config.image_path == tmp_path.resolve() / "fractal.png"
    assert config.gif_path is None
    assert config.frame_dir is None


def test_output_suffix_follows_format(tmp_path):
    config = _resolve(["--output", str(tmp_path / "shot"), "--format", "JPG"])
    assert config.image_path == (tmp_path / "shot.jpg").resolve()
    assert config.image_format == "jpg"


def test_mismatched_output_suffix_is_rejected(tmp_path):
    with pytest.raises(SystemExit):
        _resolve(["--output", str(tmp_path / "shot.gif")])


def test_gif_and_image_share_output_directory(tmp_path):
    config = _resolve(["--mode", "gif", "--mode", "image", "--output", str(tmp_path)])
    assert config.gif_path == (tmp_path / "fractal.gif").resolve()
    assert config.image_path == (tmp_path / "fractal.png").resolve()


def test_frame_dir_requires_frames_mode(tmp_path):
    with pytest.raises(SystemExit):
        _resolve(["--frame-dir", str(tmp_path)])
    config = _resolve(["--mode", "frames", "--frame-dir", str(tmp_path / "seq")])
    assert config.frame_dir == (tmp_path / "seq").resolve()
    assert config.image_path is None


def test_unknown_mode_is_rejected():
    with pytest.raises(SystemExit):
        _resolve(["--mode", "mono"])


@pytest.mark.parametrize(
    "argv,expected",
    [
        ([], Mandelbrot()),
        (["--fractal", "julia", "--julia-c", "0.3", "-0.5", "--gradient", "Turbo"], Julia(c=(0.3, -0.5), gradient="Turbo")),
        (["--fractal", "newton", "--max-iterations", "40"], Newton(max_iterations=40)),
    ],
)
def test_build_variant(argv, expected):
    parser = cli.build_parser()
    assert cli.build_variant(parser.parse_args(argv), parser) == expected


@pytest.mark.parametrize("argv", [["--escape-radius", "0"], ["--max-iterations", "0"]])
def test_invalid_variant_is_a_usage_error(argv):
    parser = cli.build_parser()
    with pytest.raises(SystemExit):
        cli.build_variant(parser.parse_args(argv), parser)


def test_unknown_gradient_is_a_usage_error():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--gradient", "Nope"])


def test_main_writes_image(tmp_path):
    output = tmp_path / "mandelbrot.png"
    cli.main([
        "--width", "32", "--height", "24", "--zoom", "0.1", "--offset-x", "-0.5",
        "--max-iterations", "30", "--device", "/CPU:0", "--output", str(output),
    ])
    with PIL.Image.open(output) as image:
        assert image.size == (32, 24)
        assert image.mode == "RGBA"


def test_main_writes_numbered_frames(tmp_path):
    frame_dir = tmp_path / "frames"
    cli.main([
        "--fractal", "newton", "--width", "16", "--height", "16", "--zoom", "0.2",
        "--frames", "3", "--zoom-factor", "0.5", "--mode", "frames",
        "--frame-dir", str(frame_dir), "--device", "/CPU:0", "--chunk-pixels", "64",
    ])
    names = sorted(path.name for path in frame_dir.iterdir())
    assert names == ["frame000.png", "frame001.png", "frame002.png"]
    first = PIL.Image.open(frame_dir / "frame000.png").tobytes()
    last = PIL.Image.open(frame_dir / "frame002.png").tobytes()
    assert first != last


def test_main_rejects_bad_dimensions(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(["--width", "0", "--output", str(tmp_path / "x.png"), "--device", "/CPU:0"])


def test_frame_image_matches_buffer():
    buffer = bytearray(range(2 * 3 * 4))
    image = cli.frame_image(buffer, 3, 2)
    assert image.size == (3, 2)
    assert image.getpixel((1, 0)) == (4, 5, 6, 7)
