"""
Manifest Repository
===================

Loading, committing and persisting manifests.

A manifest is treated as a value: ``commit`` returns a new manifest and
leaves its input alone, and ``ManifestRepository.save`` replaces the file
atomically. An unreadable or inconsistent manifest stops the run before
anything is written.
"""

import json
from pathlib import Path
from typing import Generic, Iterable, Type, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from ..models import Manifest, ManifestEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ManifestError, ErrorCode
from .document_store import write_text_atomic


M = TypeVar("M", bound=Manifest)


def commit(manifest: M, new_entries: Iterable[ManifestEntry]) -> M:
    """
    Append newly numbered entries to a manifest.

    Args:
        manifest: Current manifest (not modified)
        new_entries: Entries numbered above ``manifest.last_assigned_sequence``

    Returns:
        New manifest with the entries appended in sequence order and the
        counter advanced to the highest assigned number

    Raises:
        ManifestError: If an entry's number is not above the current counter
            or is assigned twice
    """
    ordered = sorted(new_entries, key=lambda entry: entry.sequence_number)
    if not ordered:
        return manifest

    seen = set()
    for entry in ordered:
        number = entry.sequence_number
        if number <= manifest.last_assigned_sequence or number in seen:
            raise ManifestError(
                f"Sequence number {number} is already used "
                f"(last assigned: {manifest.last_assigned_sequence})",
                error_code=ErrorCode.MANIFEST_SEQUENCE_CONFLICT,
            )
        seen.add(number)

    return manifest.model_copy(
        update={
            "entries": [*manifest.entries, *ordered],
            "last_assigned_sequence": ordered[-1].sequence_number,
        }
    )


class ManifestRepository(Generic[M]):
    """JSON file holding one manifest."""

    def __init__(
        self,
        path: Union[str, Path],
        manifest_class: Type[M],
        create_missing: bool = False,
    ):
        """
        Args:
            path: Manifest file location
            manifest_class: Manifest model stored in the file
            create_missing: Start from an empty manifest when the file is absent
        """
        self.path = Path(path)
        self.manifest_class = manifest_class
        self.create_missing = create_missing
        self.logger = get_logger_for_component("manifest_repository", document=str(self.path))

    def load(self) -> M:
        """
        Read and validate the manifest.

        Raises:
            ManifestError: If the file is missing (and may not be created),
                unreadable, not JSON, or violates the manifest invariants
        """
        if not self.path.exists():
            if self.create_missing:
                self.logger.info(f"No manifest at {self.path}; starting empty")
                return self.manifest_class()
            raise ManifestError(
                f"Manifest not found: {self.path}",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_MISSING,
            )

        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except OSError as e:
            raise ManifestError(
                f"Cannot read manifest {self.path}: {e}",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_MISSING,
            ) from e
        except ValueError as e:
            raise ManifestError(
                f"Manifest {self.path} is not valid JSON: {e}",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_PARSE_ERROR,
            ) from e

        if not isinstance(data, dict):
            raise ManifestError(
                f"Manifest {self.path} must hold a JSON object",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_INVALID,
            )

        try:
            manifest = self.manifest_class.model_validate(data)
        except PydanticValidationError as e:
            raise ManifestError(
                f"Manifest {self.path} is invalid: {e}",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_INVALID,
            ) from e

        self.logger.debug(
            f"Loaded manifest with {len(manifest.entries)} entries "
            f"(last assigned: {manifest.last_assigned_sequence})"
        )
        return manifest

    def save(self, manifest: M) -> None:
        """Persist the manifest atomically.

        Raises:
            ManifestError: If the file cannot be written
        """
        text = json.dumps(manifest.to_json_dict(), indent=2, ensure_ascii=False) + "\n"
        try:
            write_text_atomic(self.path, text)
        except OSError as e:
            raise ManifestError(
                f"Failed to write manifest {self.path}: {e}",
                manifest_path=str(self.path),
                error_code=ErrorCode.MANIFEST_WRITE_FAILED,
            ) from e

        self.logger.info(
            f"Saved manifest: {len(manifest.entries)} entries, "
            f"last assigned {manifest.last_assigned_sequence}"
        )
