from pydantic import Field, model_validator

from medtrack.models import InventoryAdjustmentReason
from medtrack.schemas.base import CamelModel

MANUAL_REASONS = (InventoryAdjustmentReason.REFILL, InventoryAdjustmentReason.MANUAL_ADJUST)


class InventoryItemResponse(CamelModel):
    medication_id: int
    name: str
    inventory_enabled: bool
    inventory_quantity: int
    inventory_low_threshold: int
    low: bool
    out: bool


class InventoryAdjustRequest(CamelModel):
    """Caregiver adjustment: a refill delta, or a correction by delta or absolute count."""

    reason: InventoryAdjustmentReason
    delta: int | None = None
    absolute_quantity: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_amount(self) -> "InventoryAdjustRequest":
        if self.reason not in MANUAL_REASONS:
            raise ValueError("reason must be one of REFILL, MANUAL_ADJUST")
        if (self.delta is None) == (self.absolute_quantity is None):
            raise ValueError("exactly one of delta or absoluteQuantity is required")
        if self.reason == InventoryAdjustmentReason.REFILL:
            if self.delta is None or self.delta <= 0:
                raise ValueError("REFILL requires a positive delta")
        return self
