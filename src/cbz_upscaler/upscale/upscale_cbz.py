import sys
import tempfile
from pathlib import Path

import typer
from loguru import logger
from loguru_config import LoguruConfig

import cbz_upscaler.log_setup as _log_setup
from cbz_upscaler.archive.cbz_reader import extract_cbz_pages, get_cbz_pages
from cbz_upscaler.archive.cbz_writer import (
    check_output_file_is_free,
    get_default_output_file,
    write_cbz,
)
from cbz_upscaler.timing import Timing
from cbz_upscaler.typer_options import (
    BatchArg,
    GpuIdArg,
    InputCbzArg,
    LogLevelArg,
    NoiseArg,
    OutputCbzArg,
    ScaleArg,
    ThreadsArg,
    TtaArg,
    Waifu2xPathArg,
)
from cbz_upscaler.upscale.gpu_detect import AUTO_GPU_ID, resolve_gpu_id, resolve_threads
from cbz_upscaler.upscale.waifu2x_exe import (
    Waifu2xParams,
    resolve_waifu2x_binary,
    upscale_page_dirs,
    upscale_page_files,
)

APP_LOGGING_NAME = "ucbz"

_RESOURCES = Path(__file__).parent.parent / "resources"

TEMP_DIR_PREFIX = "comic-upscaler-"
PAGES_SUBDIR = "pages"
UPSCALED_SUBDIR = "upscaled"


def upscale_cbz(
    input_file: Path,
    output_file: Path,
    params: Waifu2xParams,
    waifu2x_path: Path | None = None,
    batch: bool = False,
) -> None:
    """Extract the image pages of a CBZ, upscale them with waifu2x and repack them.

    All failures raise; the scratch directory is removed either way.
    """
    if not input_file.is_file():
        msg = f'Input file does not exist: "{input_file}".'
        raise FileNotFoundError(msg)

    check_output_file_is_free(output_file)

    pages = get_cbz_pages(input_file)
    if not pages:
        msg = f'No image files found in CBZ: "{input_file}".'
        raise ValueError(msg)

    waifu2x_bin = resolve_waifu2x_binary(waifu2x_path)

    try:
        temp_dir = tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX)
    except OSError as e:
        msg = f"Failed to create temporary directory: {e}"
        raise RuntimeError(msg) from e

    with temp_dir as work_dir_str:
        work_dir = Path(work_dir_str)
        pages_dir = work_dir / PAGES_SUBDIR
        upscaled_dir = work_dir / UPSCALED_SUBDIR
        pages_dir.mkdir()
        upscaled_dir.mkdir()

        extract_cbz_pages(input_file, pages, pages_dir)

        if batch:
            upscale_page_dirs(waifu2x_bin, pages, pages_dir, upscaled_dir, params)
        else:
            upscale_page_files(waifu2x_bin, pages, pages_dir, upscaled_dir, params)

        write_cbz(output_file, pages, upscaled_dir)


app = typer.Typer()


@app.command(help="Upscale the image pages of a CBZ comic with waifu2x")
def main(  # noqa: PLR0913
    input_str: InputCbzArg = "",
    output_str: OutputCbzArg = "",
    scale: ScaleArg = 2,
    noise: NoiseArg = 2,
    gpu_id: GpuIdArg = AUTO_GPU_ID,
    threads: ThreadsArg = "",
    batch: BatchArg = False,
    tta: TtaArg = True,
    waifu2x_path: Waifu2xPathArg = None,
    log_level_str: LogLevelArg = "INFO",
) -> None:
    _log_setup.log_level = log_level_str
    _log_setup.log_filename = "upscale-cbz.log"
    _log_setup.APP_LOGGING_NAME = APP_LOGGING_NAME
    LoguruConfig.load(_RESOURCES / "log-config.yaml")

    if scale <= 0:
        logger.error("Scale must be > 0.")
        sys.exit(1)
    if noise < 0:
        logger.error("Noise must be >= 0.")
        sys.exit(1)
    if not input_str:
        logger.error("The --input option is required.")
        sys.exit(1)

    process_timing = Timing()

    gpu_id = resolve_gpu_id(gpu_id)
    threads = resolve_threads(threads, gpu_id)
    params = Waifu2xParams(scale, noise, gpu_id, threads, tta=tta)

    input_file = Path(input_str)
    output_file = Path(output_str) if output_str else get_default_output_file(input_file)

    try:
        upscale_cbz(input_file, output_file, params, waifu2x_path, batch)
    except (FileNotFoundError, FileExistsError, ValueError, RuntimeError) as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception:  # noqa: BLE001
        logger.exception("Upscale error: ")
        sys.exit(1)

    process_timing.end()
    logger.info(f"Time taken to upscale CBZ: {process_timing.get_elapsed_time_in_seconds()}s.")


if __name__ == "__main__":
    app()
