from __future__ import annotations

import logging
import sys
from typing import List, Optional

from xmlshape.core.handlers.scan_handler import handle_scan
from xmlshape.core.managers.config_manager import config_manager
from xmlshape.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _log_level_from_args(argv: List[str]) -> Optional[str]:
    """Peeks at --log-level before argparse runs, so parsing itself is logged at the right level."""
    for i, arg in enumerate(argv):
        if arg == "--log-level" and i + 1 < len(argv):
            return argv[i + 1]
        if arg.startswith("--log-level="):
            return arg.split("=", 1)[1]
    return None


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the `xmlshape` console script."""
    argv = list(sys.argv[1:] if argv is None else argv)

    level = _log_level_from_args(argv) or config_manager.get_nested("debug.level", "INFO")
    configure_logger(
        level,
        module_specific_levels=config_manager.get_nested("debug.module_levels", {}),
        silenced_loggers=config_manager.get_nested("debug.silenced_loggers", {}),
    )

    try:
        return handle_scan(argv)
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
