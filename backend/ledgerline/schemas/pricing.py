"""Model token price schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModelTokenPriceCreate(BaseModel):
    """Schema for inserting a price row."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    provider: Optional[str] = None
    price_micro_cents_per_input_token: int
    price_micro_cents_per_output_token: int
    effective_from: datetime
    admin_id: str
    reason: Optional[str] = None


class ModelTokenPrice(BaseModel):
    """Price row as returned to clients."""

    id: UUID
    model_id: str
    provider: Optional[str] = None
    price_micro_cents_per_input_token: int
    price_micro_cents_per_output_token: int
    effective_from: datetime
    effective_to: Optional[datetime] = None
    admin_id: str
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class SetPriceRequest(BaseModel):
    """Admin request to schedule a new price.

    Either both per-direction prices or a single blended ``price_micro_per_token``
    must be supplied.
    """

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    provider: Optional[str] = Field(None, max_length=100)
    input_price_micro: Optional[int] = None
    output_price_micro: Optional[int] = None
    price_micro_per_token: Optional[int] = None
    effective_from: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_price_shape(self) -> "SetPriceRequest":
        """Require a complete input/output pair or a blended price, not both."""
        has_pair = self.input_price_micro is not None and self.output_price_micro is not None
        has_partial = (self.input_price_micro is None) != (self.output_price_micro is None)
        has_blended = self.price_micro_per_token is not None
        if has_partial:
            raise ValueError("input_price_micro and output_price_micro must be given together")
        if has_pair == has_blended:
            raise ValueError("Provide either input/output prices or price_micro_per_token")
        return self


class SetPriceResponse(BaseModel):
    """Id of the newly active price row."""

    price_id: UUID
