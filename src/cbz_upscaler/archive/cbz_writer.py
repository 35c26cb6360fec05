import time
import zipfile
from pathlib import Path

from loguru import logger

from cbz_upscaler.archive.cbz_reader import CbzPage

CBZ_FILE_EXT = ".cbz"
UPSCALED_SUFFIX = "_upscaled"


def get_default_output_file(input_file: Path) -> Path:
    return input_file.parent / f"{input_file.stem}{UPSCALED_SUFFIX}{CBZ_FILE_EXT}"


def check_output_file_is_free(output_file: Path) -> None:
    if output_file.exists():
        msg = f'Output file exists, remove it first: "{output_file}".'
        raise FileExistsError(msg)


def write_cbz(output_file: Path, pages: list[CbzPage], srce_dir: Path) -> None:
    """Pack the processed pages, in the given order, into a new CBZ archive.

    The archive is created exclusively: an existing file is never overwritten.
    Any failure removes the partly written archive.
    """
    for page in pages:
        if not page.get_path(srce_dir).is_file():
            msg = f'Could not find upscaled page "{page.name}" in "{srce_dir}".'
            raise FileNotFoundError(msg)

    output_dir = output_file.parent
    if not output_dir.is_dir():
        logger.info(f'Creating output directory "{output_dir}".')
        output_dir.mkdir(parents=True, exist_ok=True)

    try:
        out_fp = output_file.open("xb")
    except FileExistsError as e:
        msg = f'Output file exists, remove it first: "{output_file}".'
        raise FileExistsError(msg) from e

    try:
        with out_fp, zipfile.ZipFile(out_fp, "w", compression=zipfile.ZIP_STORED) as cbz:
            for page in pages:
                # 'ZipFile.write' would normalize the arcname.
                page_file = page.get_path(srce_dir)
                zip_info = zipfile.ZipInfo(
                    page.name, date_time=time.localtime(page_file.stat().st_mtime)[:6]
                )
                zip_info.compress_type = zipfile.ZIP_STORED
                cbz.writestr(zip_info, page_file.read_bytes())
    except Exception:
        output_file.unlink(missing_ok=True)
        raise

    logger.info(f'Created upscaled CBZ with {len(pages)} pages: "{output_file}".')
