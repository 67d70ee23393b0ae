# ============================================
# file: src/xmlshape/core/handlers/scan_handler.py
# ============================================
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from aggregator.elements import Elements
from aggregator.services.json_export_service import export_json
from aggregator.services.schema_print_service import print_schema
from ingest.controllers.file_pipeline_controller import FilePipelineController
from ingest.errors import PipelineAbortedError
from xmlshape.core.managers.config_manager import config_manager
from xmlshape.core.services.run_stats_service import ScanTimer, format_summary, run_summary
from xmlshape.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


OUTPUT_FORMATS = ("xml", "json")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xmlshape",
        description="Infer the aggregate element/attribute shape of a corpus of XML files.",
    )
    parser.add_argument("patterns", nargs="+", metavar="PATTERN",
                        help="Files or glob patterns, e.g. 'data/**/*.xml'.")
    parser.add_argument("-w", "--workers", type=int, default=None,
                        help="Worker pool size (default: pipeline.workers).")
    parser.add_argument("-p", "--pipe-size", type=int, default=None,
                        help="Channel slots per worker (default: pipeline.pipe_size).")
    parser.add_argument("-r", "--root-tag", type=str, default=None,
                        help="Aggregate the first element with this name instead of the document root.")
    parser.add_argument("-c", "--format", choices=OUTPUT_FORMATS, default=None,
                        help="Output format (default: output.format).")
    parser.add_argument("--fail-fast", action="store_true", default=None,
                        help="Abort on the first unreadable file instead of skipping it.")
    parser.add_argument("--no-progress", action="store_true",
                        help="Do not show the progress bar.")
    parser.add_argument("--log-level", type=str, default=None,
                        help="Logging level (default: debug.level).")
    return parser


def handle_scan(args: List[str], out: Optional[TextIO] = None) -> int:
    """
    Runs one scan: expand patterns, parse in parallel, aggregate, print.

    Returns 0 on success, 1 on usage errors or empty input, 2 when a
    fail-fast run was aborted.
    """
    out = out or sys.stdout
    parser = build_arg_parser()
    try:
        pargs = parser.parse_args(args)
    except SystemExit as e:
        return 0 if e.code == 0 else 1

    # CLI > config > default
    workers = pargs.workers if pargs.workers is not None else config_manager.get_nested("pipeline.workers", 8)
    pipe_size = pargs.pipe_size if pargs.pipe_size is not None else config_manager.get_nested("pipeline.pipe_size", 100)
    root_tag = pargs.root_tag if pargs.root_tag is not None else config_manager.get_nested("pipeline.root_tag", "")
    fmt = pargs.format or config_manager.get_nested("output.format", "xml")
    fail_fast = pargs.fail_fast if pargs.fail_fast is not None else bool(
        config_manager.get_nested("pipeline.fail_fast", False))
    show_progress = not pargs.no_progress and bool(config_manager.get_nested("pipeline.show_progress", True))

    if workers < 1 or pipe_size < 0:
        print("❌ Error: --workers must be >= 1 and --pipe-size >= 0.", file=sys.stderr)
        return 1
    if fmt not in OUTPUT_FORMATS:
        print(f"❌ Error: Unknown output format '{fmt}'.", file=sys.stderr)
        return 1

    filenames = list(PathUtils.expand_filenames(pargs.patterns))
    if not filenames:
        print("❌ Error: No input files matched.", file=sys.stderr)
        return 1

    timer = ScanTimer()

    controller = FilePipelineController(
        workers=workers,
        buffer_capacity=workers * (pipe_size + 1),
        root_tag=root_tag or None,
        fail_fast=fail_fast,
        show_progress=show_progress,
    )
    elements = Elements()

    try:
        with timer.phase("parse"):
            for node in controller.run(filenames):
                elements.add(node)
    except PipelineAbortedError as e:
        logger.error("%s", e)
        return 2

    with timer.phase("output"):
        if fmt == "json":
            out.write(export_json(elements) + "\n")
        else:
            print_schema(elements, out=out)
        out.flush()

    stats = controller.stats.snapshot()
    summary = run_summary(stats, elements, timer, workers)
    logger.info("%s", format_summary(summary, root_tag or "root"))
    for path in stats["skipped_paths"]:
        logger.info("Skipped: %s", path)

    return 0
