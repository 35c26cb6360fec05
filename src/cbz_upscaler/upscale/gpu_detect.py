import subprocess

from loguru import logger

AUTO_GPU_ID = "auto"
CPU_GPU_ID = "-1"
DEFAULT_THREADS = "1:2:2"

NVIDIA_SMI_CMD = ["nvidia-smi", "-L"]

LOAD_THREADS = "1"
PROC_THREADS_PER_GPU = "2"
SAVE_THREADS_PER_GPU = "2"


def parse_gpu_count(nvidia_smi_output: str) -> int:
    return sum(1 for line in nvidia_smi_output.splitlines() if line.strip().startswith("GPU "))


def detect_gpu_count() -> int | None:
    """Return the number of GPUs listed by 'nvidia-smi -L', or None if it can't be run."""
    try:
        proc = subprocess.run(  # noqa: S603
            NVIDIA_SMI_CMD, check=True, capture_output=True, text=True
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning(f"nvidia-smi not found or failed: {e}; assuming 1 GPU.")
        return None

    return parse_gpu_count(proc.stdout)


def get_gpu_id_str(num_gpus: int | None) -> str:
    if num_gpus is None:
        return "0"
    if num_gpus == 0:
        return CPU_GPU_ID
    return ",".join(str(i) for i in range(num_gpus))


def resolve_gpu_id(gpu_id: str) -> str:
    if gpu_id != AUTO_GPU_ID:
        return gpu_id

    num_gpus = detect_gpu_count()
    gpu_id = get_gpu_id_str(num_gpus)

    if num_gpus == 0:
        logger.info("No GPUs detected, using CPU.")
    logger.info(f"Detected {1 if num_gpus is None else num_gpus} GPUs, using IDs: {gpu_id}.")

    return gpu_id


def get_threads_str(gpu_id: str) -> str:
    num_gpus = len(gpu_id.split(","))
    if num_gpus == 1:
        return DEFAULT_THREADS

    proc_threads = ",".join([PROC_THREADS_PER_GPU] * num_gpus)
    save_threads = ",".join([SAVE_THREADS_PER_GPU] * num_gpus)

    return f"{LOAD_THREADS}:{proc_threads}:{save_threads}"


def resolve_threads(threads: str, gpu_id: str) -> str:
    # An explicit thread string goes to the upscaler as is.
    if threads:
        return threads

    threads = get_threads_str(gpu_id)
    logger.info(f"Adjusted threads for {len(gpu_id.split(','))} GPUs: {threads}.")

    return threads
