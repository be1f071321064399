"""
Document Store
==============

Reads and writes site files. Writes go to a temporary file in the target
directory which then replaces the target, so a reader never sees a
half-written page.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import RenderError, ErrorCode


PathLike = Union[str, Path]


def write_text_atomic(path: PathLike, text: str) -> None:
    """Replace ``path`` with ``text`` in one rename.

    Line endings are written exactly as they appear in ``text``.

    Raises:
        OSError: If the temporary file cannot be written or moved
    """
    path = Path(path)
    directory = path.parent if str(path.parent) else Path(".")
    directory.mkdir(parents=True, exist_ok=True)

    tmp_file = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", newline="", dir=directory,
        prefix=f".{path.name}.", suffix=".tmp", delete=False,
    )
    try:
        with tmp_file:
            tmp_file.write(text)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_file.name, path)
    except BaseException:
        os.unlink(tmp_file.name)
        raise


class DocumentStore:
    """Site files addressed by name relative to the site root."""

    def __init__(self, root: PathLike):
        self.root = Path(root)
        self.logger = get_logger_for_component("document_store")

    def path_for(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def read(self, name: str) -> Optional[str]:
        """Document text with its line endings intact, or None if absent."""
        path = self.path_for(name)
        if not path.is_file():
            return None
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError(
                f"Failed to read {path}: {e}",
                document=str(path),
                error_code=ErrorCode.DOCUMENT_WRITE_FAILED,
                recoverable=False,
            ) from e

    def write(self, name: str, text: str) -> Path:
        path = self.path_for(name)
        try:
            write_text_atomic(path, text)
        except OSError as e:
            raise RenderError(
                f"Failed to write {path}: {e}",
                document=str(path),
                error_code=ErrorCode.DOCUMENT_WRITE_FAILED,
                recoverable=False,
            ) from e
        self.logger.info(f"Wrote {name} ({len(text)} chars)")
        return path
