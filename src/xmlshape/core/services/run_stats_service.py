# src/xmlshape/core/services/run_stats_service.py
import os
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import psutil

from aggregator.elements import Elements


class ScanTimer:
    """Wall-clock durations of the named phases of one scan ("parse", "output")."""

    def __init__(self):
        self.durations: Dict[str, float] = {}

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            self.durations[name] = self.durations.get(name, 0.0) + elapsed

    def get(self, name: str) -> float:
        return self.durations.get(name, 0.0)

    @property
    def total(self) -> float:
        return sum(self.durations.values())


def memory_info() -> Dict[str, Any]:
    """
    Resident memory of the current process.

    Returns:
        dict: rss in MB and the share of total RAM it represents.
    """
    proc = psutil.Process(os.getpid())
    rss = proc.memory_info().rss
    return {
        "rss_mb": round(rss / (1024 * 1024), 2),
        "percent_of_ram": round(proc.memory_percent(), 2),
    }


def run_summary(pipeline_stats: Dict[str, Any], elements: Elements, timer: ScanTimer, workers: int) -> Dict[str, Any]:
    """Collects the figures reported at the end of a scan."""
    parse_s = timer.get("parse")
    files_total = pipeline_stats.get("files_total", 0)
    return {
        "files_total": files_total,
        "parsed": pipeline_stats.get("parsed", 0),
        "skipped": pipeline_stats.get("skipped", 0),
        "empty": pipeline_stats.get("empty", 0),
        "roots_aggregated": elements.total(),
        "top_level_tags": elements.len(),
        "workers": workers,
        "parse_s": round(parse_s, 3),
        "output_s": round(timer.get("output"), 3),
        "duration_s": round(timer.total, 3),
        "files_per_s": round((files_total / parse_s) if parse_s > 0 else 0.0, 2),
        **memory_info(),
    }


def format_summary(summary: Dict[str, Any], root_label: str) -> str:
    """One-line, human-readable rendering of `run_summary` for the INFO log."""
    return (
        f"Scanned {summary['files_total']} files "
        f"({summary['parsed']} parsed, {summary['skipped']} skipped, {summary['empty']} without {root_label}) "
        f"with {summary['workers']} workers in {summary['duration_s']:.3f}s "
        f"(parse {summary['parse_s']:.3f}s, {summary['files_per_s']:.2f} files/s; output {summary['output_s']:.3f}s); "
        f"{summary['roots_aggregated']} roots aggregated, {summary['top_level_tags']} distinct top-level tags; "
        f"rss {summary['rss_mb']:.2f} MB ({summary['percent_of_ram']:.2f}% of RAM)"
    )
