"""Validation of files submitted for review."""

from __future__ import annotations

import posixpath
import re

from collections.abc import Sequence
from dataclasses import dataclass

from diffsage.domain.review.entities import ReviewFile
from diffsage.shared.constants import (
    ALLOWED_EXTENSIONS,
    MAX_FILE_SIZE_BYTES,
    MAX_FILENAME_LENGTH,
    MAX_FILES_PER_REVIEW,
    MAX_LINE_LENGTH,
    MAX_TOTAL_SIZE_BYTES,
    SPECIAL_FILENAMES,
)
from diffsage.shared.exceptions import FileValidationError

_BINARY_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INVALID_FILENAME_CHARS_RE = re.compile(r'[<>:"|?*\x00-\x1f]')
_RESERVED_NAME_RE = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\.|$)", re.IGNORECASE)


def format_bytes(size: int) -> str:
    """Human-readable size, e.g. ``1.5 KB``."""
    if size == 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {units[unit]}"


def file_extension(path: str) -> str:
    """Extension used for the allow-list check.

    Well-known dot-files (and ``.env.*`` variants) are their own extension;
    ``Dockerfile`` maps to ``dockerfile``.
    """
    base = posixpath.basename(path)
    if base in SPECIAL_FILENAMES or base.startswith(".env."):
        return base
    if base.lower() == "dockerfile":
        return "dockerfile"
    _, ext = posixpath.splitext(base)
    return ext.lower()


def is_valid_filename(path: str) -> bool:
    if not path or len(path) > MAX_FILENAME_LENGTH:
        return False
    if _INVALID_FILENAME_CHARS_RE.search(path):
        return False
    return not _RESERVED_NAME_RE.match(posixpath.basename(path))


@dataclass(frozen=True)
class FileValidator:
    """Rejects file sets that are empty, too large, or not reviewable text.

    Checks run in a fixed order (count, total size, then per file: size,
    extension, filename, binary content, line length) and the first failure
    is raised as ``FileValidationError`` with a stable ``code``.
    """

    max_files: int = MAX_FILES_PER_REVIEW
    max_file_size: int = MAX_FILE_SIZE_BYTES
    max_total_size: int = MAX_TOTAL_SIZE_BYTES
    max_line_length: int = MAX_LINE_LENGTH
    allowed_extensions: frozenset[str] = ALLOWED_EXTENSIONS

    def validate(self, files: Sequence[ReviewFile]) -> None:
        if not files:
            raise FileValidationError("NO_FILES", "No files provided for review")
        if len(files) > self.max_files:
            msg = f"Too many files: {len(files)} exceeds limit of {self.max_files}"
            raise FileValidationError("TOO_MANY_FILES", msg)

        total = sum(len(f.full_content) for f in files)
        if total > self.max_total_size:
            msg = (
                f"Total file size {format_bytes(total)} exceeds limit of "
                f"{format_bytes(self.max_total_size)}"
            )
            raise FileValidationError("TOTAL_SIZE_EXCEEDED", msg)

        for f in files:
            self._validate_file(f)

    def _validate_file(self, f: ReviewFile) -> None:
        size = len(f.full_content)
        if size > self.max_file_size:
            msg = (
                f"File '{f.path}' size {format_bytes(size)} exceeds limit of "
                f"{format_bytes(self.max_file_size)}"
            )
            raise FileValidationError("FILE_TOO_LARGE", msg)

        ext = file_extension(f.path)
        if ext not in self.allowed_extensions and ext not in SPECIAL_FILENAMES and not (
            ext.startswith(".env.")
        ):
            msg = f"File '{f.path}' has unsupported extension '{ext}'"
            raise FileValidationError("UNSUPPORTED_EXTENSION", msg)

        if not is_valid_filename(f.path):
            msg = f"File '{f.path}' has invalid filename"
            raise FileValidationError("INVALID_FILENAME", msg)

        if _BINARY_RE.search(f.full_content):
            msg = f"File '{f.path}' appears to contain binary content"
            raise FileValidationError("BINARY_CONTENT", msg)

        for number, line in enumerate(f.full_content.split("\n"), 1):
            if len(line) > self.max_line_length:
                msg = (
                    f"File '{f.path}' line {number} is too long ({len(line)} chars). "
                    "This might be minified code."
                )
                raise FileValidationError("LINE_TOO_LONG", msg)
