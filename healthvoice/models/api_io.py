from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .domain import ClarificationAnswer


class ParseHealthLogRequest(BaseModel):
    # Blank transcripts are rejected by the route with a 400, not by schema validation.
    transcript: Optional[str] = Field(default=None, description="Transcribed utterance to parse")
    clarification: Optional[ClarificationAnswer] = Field(
        default=None,
        description="Answer to a previous clarification question",
    )


class ErrorDetail(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


__all__ = [
    "ParseHealthLogRequest",
    "ErrorDetail",
    "ErrorResponse",
]
