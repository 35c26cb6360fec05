import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from cbz_upscaler.archive.cbz_reader import CbzPage
from cbz_upscaler.timing import Timing

WAIFU2X_BIN_NAME = "waifu2x-ncnn-vulkan"
WAIFU2X_INSTALL_URL = "https://github.com/nihui/waifu2x-ncnn-vulkan"

# Directory runs write "<stem>.<format>"; these are the formats waifu2x can write.
WAIFU2X_OUTPUT_FORMATS = {".png": "png", ".jpg": "jpg", ".jpeg": "jpg", ".webp": "webp"}
WAIFU2X_DEFAULT_OUTPUT_FORMAT = "png"


@dataclass(frozen=True)
class Waifu2xParams:
    scale: int
    noise: int
    gpu_id: str
    threads: str
    tta: bool = True
    verbose: bool = True


def resolve_waifu2x_binary(custom_path: Path | None = None) -> Path:
    if custom_path:
        binary = custom_path.expanduser()
        if not binary.is_file():
            msg = f'waifu2x binary not found at: "{binary}".'
            raise FileNotFoundError(msg)
        return binary

    system_binary = shutil.which(WAIFU2X_BIN_NAME)
    if not system_binary:
        msg = f"{WAIFU2X_BIN_NAME} not found in PATH. Install from {WAIFU2X_INSTALL_URL}."
        raise FileNotFoundError(msg)

    return Path(system_binary)


def get_waifu2x_args(
    binary: Path,
    in_path: Path,
    out_path: Path,
    params: Waifu2xParams,
    output_format: str | None = None,
) -> list[str]:
    run_args = [
        str(binary),
        "-i",
        str(in_path),
        "-o",
        str(out_path),
        "-s",
        str(params.scale),
        "-n",
        str(params.noise),
    ]
    if output_format:
        run_args.extend(["-f", output_format])
    if params.tta:
        run_args.append("-x")
    run_args.extend(["-g", params.gpu_id, "-j", params.threads])
    if params.verbose:
        run_args.append("-v")

    return run_args


def run_waifu2x(run_args: list[str]) -> None:
    logger.debug(f"Running waifu2x: {' '.join(run_args)}.")

    with subprocess.Popen(  # noqa: S603
        run_args,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        encoding="utf-8",
        errors="replace",
    ) as process:
        while True:
            output = process.stdout.readline()  # ty: ignore[possibly-missing-attribute]
            if output == "" and process.poll() is not None:
                break
            if output:
                logger.info(output.strip())

        rc = process.wait()

    if rc != 0:
        msg = f"waifu2x failed with exit code {rc}."
        raise RuntimeError(msg)


def upscale_page_files(
    binary: Path, pages: list[CbzPage], srce_dir: Path, dest_dir: Path, params: Waifu2xParams
) -> None:
    for page in pages:
        in_file = page.get_path(srce_dir)
        out_file = page.get_path(dest_dir)
        out_file.parent.mkdir(parents=True, exist_ok=True)

        timing = Timing()
        logger.info(f'Upscaling page "{page.name}"...')

        try:
            run_waifu2x(get_waifu2x_args(binary, in_file, out_file, params))
        except RuntimeError as e:
            msg = f'Failed to upscale "{page.name}": {e}'
            raise RuntimeError(msg) from e

        if not out_file.is_file():
            msg = f'Upscale failed for "{page.name}": output not created.'
            raise RuntimeError(msg)

        logger.debug(f"Time taken to upscale page: {timing.get_elapsed_time_in_seconds()}s.")

    logger.info(f'Upscaled {len(pages)} images to "{dest_dir}".')


def get_dir_output_format(dir_pages: list[CbzPage]) -> str:
    formats = {
        WAIFU2X_OUTPUT_FORMATS.get(Path(page.name).suffix.lower(), WAIFU2X_DEFAULT_OUTPUT_FORMAT)
        for page in dir_pages
    }
    return formats.pop() if len(formats) == 1 else WAIFU2X_DEFAULT_OUTPUT_FORMAT


def get_pages_by_dir(pages: list[CbzPage], srce_dir: Path) -> dict[Path, list[CbzPage]]:
    pages_by_dir: dict[Path, list[CbzPage]] = {}
    for page in pages:
        pages_by_dir.setdefault(page.get_path(srce_dir).parent, []).append(page)

    for in_dir, dir_pages in pages_by_dir.items():
        stems = [page.get_path(srce_dir).stem for page in dir_pages]
        if len(stems) != len(set(stems)):
            msg = (
                f'Batch mode needs unique page names without extension in "{in_dir}".'
                f" Run without --batch."
            )
            raise ValueError(msg)

    return dict(sorted(pages_by_dir.items()))


def upscale_page_dirs(
    binary: Path, pages: list[CbzPage], srce_dir: Path, dest_dir: Path, params: Waifu2xParams
) -> None:
    """Upscale pages with one waifu2x run per page directory.

    waifu2x names directory output "<stem>.<format>", so each output file is renamed
    back to its page name. The format follows the directory's page extension when
    all pages share one that waifu2x can write, and is png otherwise.
    """
    missing_pages = []

    for in_dir, dir_pages in get_pages_by_dir(pages, srce_dir).items():
        out_dir = dest_dir / in_dir.relative_to(srce_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        output_format = get_dir_output_format(dir_pages)

        timing = Timing()
        logger.info(f'Upscaling page directory "{in_dir}" to {output_format}...')

        try:
            run_waifu2x(get_waifu2x_args(binary, in_dir, out_dir, params, output_format))
        except RuntimeError as e:
            msg = f'Failed to upscale directory "{in_dir}": {e}'
            raise RuntimeError(msg) from e

        for page in dir_pages:
            page_file = page.get_path(dest_dir)
            waifu2x_file = out_dir / f"{page_file.stem}.{output_format}"
            if not waifu2x_file.is_file():
                missing_pages.append(page.name)
            elif waifu2x_file != page_file:
                waifu2x_file.rename(page_file)

        logger.debug(f"Time taken to upscale directory: {timing.get_elapsed_time_in_seconds()}s.")

    if missing_pages:
        msg = f"Upscale failed for {len(missing_pages)} pages, output not created: {missing_pages}."
        raise RuntimeError(msg)

    logger.info(f'Upscaled {len(pages)} images to "{dest_dir}".')
