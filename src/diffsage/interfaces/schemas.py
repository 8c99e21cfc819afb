"""Request payload schema for the command-line entry point."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from diffsage.application.dto import StartReviewCommand
from diffsage.domain.review.entities import ReviewFile
from diffsage.shared.exceptions import InvalidRequestError
from diffsage.shared.types import ClientId, FilePath, ReviewId


class FileRequest(BaseModel):
    """One changed file; accepts the ``filename``/``fileContent``/``diff`` aliases."""

    path: str = Field(min_length=1, validation_alias=AliasChoices("path", "filename"))
    full_content: str = Field(
        validation_alias=AliasChoices("full_content", "fileContent")
    )
    unified_diff: str = Field(
        default="", validation_alias=AliasChoices("unified_diff", "diff")
    )

    def to_file(self) -> ReviewFile:
        return ReviewFile(
            path=FilePath(self.path),
            full_content=self.full_content,
            unified_diff=self.unified_diff,
        )


class ReviewRequest(BaseModel):
    client_id: str = Field(min_length=1, validation_alias=AliasChoices("client_id", "clientId"))
    review_id: str = Field(min_length=1, validation_alias=AliasChoices("review_id", "reviewId"))
    files: list[FileRequest]

    def to_command(self) -> StartReviewCommand:
        return StartReviewCommand(
            review_id=ReviewId(self.review_id),
            client_id=ClientId(self.client_id),
            files=tuple(f.to_file() for f in self.files),
        )


def load_request(path: Path) -> ReviewRequest:
    """Read and validate a review request from a JSON file.

    Raises:
        InvalidRequestError: If the file is unreadable or fails validation.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read request file {path}: {exc}"
        raise InvalidRequestError(msg) from exc
    try:
        return ReviewRequest.model_validate_json(raw)
    except ValidationError as exc:
        msg = f"Invalid review request in {path}: {exc}"
        raise InvalidRequestError(msg) from exc
