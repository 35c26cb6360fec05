# Globals read by loguru-config ('ext://' references in 'resources/log-config.yaml').
# Commands set these before calling 'LoguruConfig.load'.

import os
from pathlib import Path

APP_LOGGING_NAME = "cbzu"

log_level = "INFO"
log_filename = "upscale-cbz.log"
log_dir = Path(os.environ.get("CBZ_UPSCALER_LOG_DIR", Path.home() / ".cache" / "cbz-upscaler"))


def __getattr__(name: str) -> str:
    if name == "log_path":
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / log_filename)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
