"""Shared response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from tagkeep.services.tracking import BatchResult


class BatchFailure(BaseModel):
    """One batch item that could not be applied."""

    path: str
    error: str
    code: str


class BatchResultResponse(BaseModel):
    """Outcome of a batch request."""

    succeeded: list[str]
    failed: list[BatchFailure]

    @classmethod
    def from_batch(cls, batch: BatchResult) -> BatchResultResponse:
        return cls(
            succeeded=batch.succeeded,
            failed=[
                BatchFailure(path=item.path, error=item.error, code=item.code)
                for item in batch.failed
            ],
        )


class ErrorResponse(BaseModel):
    """Error body returned for every engine error."""

    detail: str
    code: str
