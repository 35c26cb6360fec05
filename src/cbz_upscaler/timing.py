import time


class Timing:
    def __init__(self) -> None:
        self.start_time = time.time()
        self.end_time: float | None = None

    def end(self) -> None:
        self.end_time = time.time()

    def get_elapsed_time_in_seconds(self) -> int:
        end_time = time.time() if self.end_time is None else self.end_time
        return int(end_time - self.start_time)
