import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from loguru import logger

IMAGE_FILE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp")


@dataclass(frozen=True)
class CbzPage:
    name: str
    file_size: int

    def get_path(self, root_dir: Path) -> Path:
        return root_dir.joinpath(*PurePosixPath(self.name).parts)


def is_image_entry(zip_info: zipfile.ZipInfo) -> bool:
    if zip_info.is_dir():
        return False
    return PurePosixPath(zip_info.filename).suffix.lower() in IMAGE_FILE_EXTENSIONS


def check_safe_entry_name(name: str) -> None:
    entry_path = PurePosixPath(name.replace("\\", "/"))
    if entry_path.is_absolute() or ".." in entry_path.parts:
        msg = f'Unsafe archive entry name: "{name}".'
        raise ValueError(msg)


def get_page_key(name: str) -> str:
    return PurePosixPath(name).as_posix()


def open_cbz(cbz_file: Path) -> zipfile.ZipFile:
    if not cbz_file.is_file():
        msg = f'Could not find input CBZ file: "{cbz_file}".'
        raise FileNotFoundError(msg)

    try:
        return zipfile.ZipFile(cbz_file)
    except (zipfile.BadZipFile, OSError) as e:
        msg = f'Failed to open CBZ file "{cbz_file}": {e}'
        raise ValueError(msg) from e


def get_cbz_pages(cbz_file: Path) -> list[CbzPage]:
    """Return the image pages of a CBZ archive, sorted by entry name.

    Directory entries and files without an image extension are skipped. Entry names
    that resolve to the same path ("01.png", "./01.png", "a//01.png") are the same
    page: the last such entry wins, keeping its name exactly as stored.
    """
    with open_cbz(cbz_file) as cbz:
        pages: dict[str, CbzPage] = {}
        num_skipped = 0
        for zip_info in cbz.infolist():
            if not is_image_entry(zip_info):
                num_skipped += 1
                continue
            check_safe_entry_name(zip_info.filename)
            page_key = get_page_key(zip_info.filename)
            if page_key in pages:
                logger.warning(
                    f'Duplicate archive entry - using the last one: "{zip_info.filename}".'
                )
            pages[page_key] = CbzPage(zip_info.filename, zip_info.file_size)

    if num_skipped:
        logger.debug(f'Skipped {num_skipped} non-image entries in "{cbz_file.name}".')

    return sorted(pages.values(), key=lambda page: page.name)


def read_page_bytes(cbz_file: Path, page: CbzPage) -> bytes:
    with open_cbz(cbz_file) as cbz:
        return cbz.read(page.name)


def extract_cbz_pages(cbz_file: Path, pages: list[CbzPage], dest_dir: Path) -> list[Path]:
    if not dest_dir.is_dir():
        msg = f'Could not find extract directory: "{dest_dir}".'
        raise FileNotFoundError(msg)

    extracted_files = []
    with open_cbz(cbz_file) as cbz:
        for page in pages:
            dest_file = page.get_path(dest_dir)
            dest_file.parent.mkdir(parents=True, exist_ok=True)
            try:
                with cbz.open(page.name) as srce, dest_file.open("wb") as dest:
                    shutil.copyfileobj(srce, dest)
            except (zipfile.BadZipFile, KeyError) as e:
                msg = f'Failed to extract "{page.name}" from archive: {e}'
                raise ValueError(msg) from e
            extracted_files.append(dest_file)

    logger.info(f'Extracted {len(extracted_files)} images to temp directory: "{dest_dir}".')

    return extracted_files
