import sys
import textwrap
import zipfile
from pathlib import Path

import pytest
from loguru import logger

import cbz_upscaler.log_setup as _log_setup

FAKE_WAIFU2X = """\
#!{python}
import sys
from pathlib import Path

MODE = "{mode}"

args = sys.argv[1:]
with open("{calls_file}", "a") as f:
    f.write(" ".join(args) + "\\n")

if MODE == "bad-bytes":
    sys.stdout.buffer.write(b"gpu \\xff\\xfe name\\n")
    sys.stdout.flush()

if MODE == "fail":
    print("vkCreateInstance failed")
    sys.exit(255)

in_path = Path(args[args.index("-i") + 1])
out_path = Path(args[args.index("-o") + 1])
print(f"{{in_path}} -> {{out_path}} done")

if MODE == "no-output":
    sys.exit(0)

if in_path.is_dir():
    out_format = args[args.index("-f") + 1] if "-f" in args else "png"
    for in_file in sorted(in_path.iterdir()):
        if in_file.is_file():
            out_file = out_path / f"{{in_file.stem}}.{{out_format}}"
            out_file.write_bytes(b"upscaled:" + in_file.read_bytes())
else:
    out_path.write_bytes(b"upscaled:" + in_path.read_bytes())
"""


@pytest.fixture(autouse=True)
def _log_to_tmp_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(_log_setup, "log_dir", tmp_path / "logs")
    yield
    logger.remove()
    logger.add(sys.stderr)


def make_cbz(cbz_file: Path, entries: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(cbz_file, "w") as cbz:
        for name, content in entries.items():
            cbz.writestr(name, content)
    return cbz_file


def make_fake_waifu2x(bin_dir: Path, mode: str = "ok") -> Path:
    bin_dir.mkdir(parents=True, exist_ok=True)
    fake_bin = bin_dir / "waifu2x-ncnn-vulkan"
    fake_bin.write_text(
        textwrap.dedent(
            FAKE_WAIFU2X.format(
                python=sys.executable, mode=mode, calls_file=bin_dir / "calls.txt"
            )
        )
    )
    fake_bin.chmod(0o755)
    return fake_bin


def get_fake_waifu2x_calls(fake_bin: Path) -> list[list[str]]:
    calls_file = fake_bin.parent / "calls.txt"
    if not calls_file.is_file():
        return []
    return [line.split() for line in calls_file.read_text().splitlines()]


@pytest.fixture
def comic_cbz(tmp_path) -> Path:
    return make_cbz(
        tmp_path / "comic.cbz",
        {
            "page_010.png": b"p10",
            "page_002.jpg": b"p2",
            "ComicInfo.xml": b"<ComicInfo/>",
            "page_001.PNG": b"p1",
            "notes.txt": b"not a page",
            "page_003.jpeg": b"p3",
        },
    )


@pytest.fixture
def fake_waifu2x(tmp_path) -> Path:
    return make_fake_waifu2x(tmp_path / "bin")
