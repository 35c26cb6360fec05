from pathlib import Path
from typing import Annotated

import typer

LogLevelArg = Annotated[
    str, typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
]
InputCbzArg = Annotated[str, typer.Option("--input", "-i", help="Input CBZ file (required)")]
OutputCbzArg = Annotated[
    str,
    typer.Option("--output", "-o", help="Output CBZ file (default: <input>_upscaled.cbz)"),
]
ScaleArg = Annotated[int, typer.Option("--scale", "-s", help="Scale factor")]
NoiseArg = Annotated[int, typer.Option("--noise", "-n", help="Noise reduction level")]
GpuIdArg = Annotated[
    str,
    typer.Option(
        "--gpu-id",
        "-g",
        help="GPU ID (-1=cpu, 0,1,... or comma-separated for multi-GPU; 'auto' to detect)",
    ),
]
ThreadsArg = Annotated[
    str,
    typer.Option(
        "--threads",
        "-j",
        help="Threads for load:proc:save (default: 1:2:2, widened per GPU when multi-GPU)",
    ),
]
Waifu2xPathArg = Annotated[
    Path | None,
    typer.Option(
        "--waifu2x-path",
        envvar="WAIFU2X_BIN",
        help="Path to the waifu2x-ncnn-vulkan binary (default: look up on PATH)",
    ),
]
BatchArg = Annotated[
    bool, typer.Option("--batch", help="Run waifu2x once per page directory instead of per page")
]
TtaArg = Annotated[bool, typer.Option("--tta/--no-tta", help="Enable waifu2x TTA mode (-x)")]
