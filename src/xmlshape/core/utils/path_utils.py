# src/xmlshape/core/utils/path_utils.py
import glob
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for package paths and input filename expansion.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed `xmlshape` package (where settings.json lives)."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def expand_filenames(patterns: Iterable[str]) -> Iterator[str]:
        """
        Lazily yields the files matched by each glob pattern, in sorted order
        per pattern. Directories are ignored and a file matched by several
        patterns is yielded once.
        """
        seen = set()
        for pattern in patterns:
            pattern = os.path.expanduser(pattern)
            if glob.has_magic(pattern):
                matches = sorted(glob.iglob(pattern, recursive=True))
            else:
                matches = [pattern]

            found = False
            for path in matches:
                if not os.path.isfile(path):
                    continue
                found = True
                if path in seen:
                    continue
                seen.add(path)
                yield path

            if not found:
                logger.warning("No files matched '%s'.", pattern)
