from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--frames", "1", "--mode", "image", "--width", "160", "--height", "120", "--zoom", "0.02"]


@dataclass
class Expected:
    path: Path
    is_dir: bool = False


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[Expected]

    def full_args(self) -> list[str]:
        return [sys.executable, "render.py", *self.args]

    @property
    def root(self) -> Path:
        return EXAMPLES_ROOT / self.name


def _image(name: str, filename: str, *args: str) -> Example:
    target = EXAMPLES_ROOT / name / filename
    return Example(name=name, args=[*BASE_ARGS, *args, "--output", str(target)], expected=[Expected(target)])


EXAMPLES: list[Example] = [
    _image("mandelbrot", "mandelbrot.png", "--offset-x", "-0.5"),
    _image("julia", "julia.png", "--fractal", "julia", "--julia-c", "-0.8", "0.156"),
    _image("newton", "newton.png", "--fractal", "newton", "--max-iterations", "40"),
    _image("max-iterations", "deep.png", "--max-iterations", "800"),
    _image("escape-radius", "wide-radius.png", "--escape-radius", "8"),
    _image("gradient", "viridis.png", "--gradient", "Viridis"),
    _image("coloring", "oscillator.png", "--coloring", "oscillator"),
    _image("zoom-box", "boxed.png", "--zoom-box", "20", "20", "80", "60"),
    _image("workers", "two-workers.png", "--workers", "2", "--chunk-pixels", "4096"),
    _image("format", "custom.webp", "--format", "webp"),
    _image("verbose", "diagnostic.png", "--verbose"),
    Example(
        name="gif",
        args=[
            "--frames", "6", "--mode", "gif", "--width", "120", "--height", "90",
            "--offset-x", "-0.743643", "--offset-y", "0.131825", "--zoom", "0.01",
            "--final-zoom", "1e-2", "--gif-frame-duration", "0.2",
            "--output", str(EXAMPLES_ROOT / "gif" / "zoom.gif"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "gif" / "zoom.gif")],
    ),
    Example(
        name="frames",
        args=[
            "--frames", "3", "--mode", "frames", "--width", "120", "--height", "90",
            "--zoom-factor", "0.5", "--easing", "linear",
            "--frame-dir", str(EXAMPLES_ROOT / "frames" / "sequence"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "frames" / "sequence", is_dir=True)],
    ),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    _ensure_clean([example.root])
    example.root.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    for expected in example.expected:
        if expected.is_dir:
            if not expected.path.is_dir():
                raise RuntimeError(f"Expected directory {expected.path} was not created")
            if not any(expected.path.iterdir()):
                raise RuntimeError(f"Directory {expected.path} is empty")
        elif not expected.path.is_file():
            raise RuntimeError(f"Expected file {expected.path} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
