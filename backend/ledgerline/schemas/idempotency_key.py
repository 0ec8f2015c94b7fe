"""Idempotency key schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class IdempotencyKeyCreate(BaseModel):
    """Schema for recording a completed guarded operation."""

    key: str = Field(..., min_length=1, max_length=255)
    operation_type: str
    user_id: Optional[UUID] = None
    result_reference: str
