from typing import Optional, Dict
import logging
from tqdm import tqdm
import psutil
import time

class ProgressMonitor:
    def __init__(self, total: int, desc: str = "Processing",
                 logger: Optional[logging.Logger] = None,
                 log_every: int = 500,
                 disable: bool = False):
        """Initialize progress monitor with total steps and description"""
        self.logger = logger or logging.getLogger('utils.progress')
        self.pbar = tqdm(total=total, desc=desc, disable=disable)
        self.total = total
        self.current = 0
        self.log_every = log_every
        self.start_time = time.time()
        self.description = desc

    def update(self, n: int = 1, status: str = ""):
        """Update progress by n steps with optional status message"""
        previous = self.current
        self.current += n
        self.pbar.update(n)

        if status:
            self.logger.info(f"{self.description}: {status}")

        # Log whenever a multiple of log_every is crossed
        if self.total and self.current // self.log_every > previous // self.log_every:
            elapsed = time.time() - self.start_time
            progress = self.current / self.total
            eta = (elapsed / progress) * (1 - progress) if progress > 0 else 0

            self.logger.info(
                f"Progress: {self.current}/{self.total} "
                f"({progress*100:.1f}%) - "
                f"Elapsed: {elapsed:.1f}s - "
                f"ETA: {eta:.1f}s"
            )

    def close(self):
        """Close progress bar and log final statistics"""
        self.pbar.close()
        total_time = time.time() - self.start_time
        self.logger.info(
            f"Completed {self.description} ({self.current}/{self.total}) in {total_time:.2f} seconds"
        )


class PerformanceTracker:
    """Tracks duration and memory usage of pipeline stages"""
    def __init__(self):
        self.start_time = time.time()
        self.last_checkpoint = self.start_time
        self.checkpoints: Dict[str, Dict[str, float]] = {}

    def checkpoint(self, name: str):
        """Record timing for a checkpoint"""
        now = time.time()
        duration = now - self.last_checkpoint
        self.checkpoints[name] = {
            'duration': duration,
            'memory': psutil.Process().memory_info().rss / 1024 / 1024  # MB
        }
        self.last_checkpoint = now

    def report(self) -> str:
        """Generate checkpoint report"""
        total_time = time.time() - self.start_time
        report = ["Performance Report:", "-----------------"]

        for name, stats in self.checkpoints.items():
            report.append(f"{name}:")
            report.append(f"  Duration: {stats['duration']:.2f} seconds")
            report.append(f"  Memory: {stats['memory']:.2f} MB")

        report.append("-----------------")
        report.append(f"Total Time: {total_time:.2f} seconds")
        return "\n".join(report)
