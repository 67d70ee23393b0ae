# src/ingest/managers/progress_manager.py
import sys
import threading
from typing import Optional

from tqdm import tqdm
import logging

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the lifecycle of a tqdm progress bar shared by the pipeline workers.
    """

    def __init__(self, total: Optional[int], desc: str, unit: str = "file", enabled: bool = True):
        """
        Initializes and displays the progress bar.

        Args:
            total: Number of files to process, or None when the source is lazy.
            enabled: When False no bar is created and every call is a no-op.
        """
        self._lock = threading.Lock()
        self.pbar = None
        if not enabled:
            return

        self.pbar = tqdm(
            total=total,
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            smoothing=0.1,
            mininterval=0.5,
            postfix={"docs": 0, "failures": 0},
            file=sys.stderr
        )

    def advance(self, steps: int = 1, docs_count: int = None, failures_count: int = None):
        """
        Increments the progress bar (steps = processed files) and updates status counters.
        """
        if not self.pbar:
            return

        with self._lock:
            self.pbar.update(steps)

            postfix = {}
            if docs_count is not None:
                postfix["docs"] = docs_count
            if failures_count is not None:
                postfix["failures"] = failures_count
            if postfix:
                self.pbar.set_postfix(postfix, refresh=False)

    def close(self, final_docs: int, final_failures: int = 0):
        """Closes the progress bar with the final counters."""
        if not self.pbar:
            return

        try:
            with self._lock:
                self.pbar.set_postfix({"docs": final_docs, "failures": final_failures}, refresh=True)
                self.pbar.close()
            logger.debug("ProgressManager: Progress bar closed.")
        except Exception as e:
            logger.error(f"Error encountered while closing progress bar: {e}")
