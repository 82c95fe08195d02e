from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List


class StockEntryCreate(BaseModel):
    vaccine_id: int
    lot: str = Field(..., min_length=1)
    sealed_expiry: date
    quantity: int = Field(..., gt=0, le=1000, description="Number of sealed vials received")

class StockEntryResponse(BaseModel):
    vaccine_id: int
    lot: str
    vial_ids: List[int]

class VialResponse(BaseModel):
    id: int
    vaccine_id: int
    lot: str
    sealed_expiry: date
    doses_remaining: int
    state: str
    opened_at: datetime | None
    usable_until: datetime | None
    received_at: datetime

    model_config = ConfigDict(from_attributes=True)

class VialWithVaccineResponse(VialResponse):
    vaccine_name: str

class StockSummaryResponse(BaseModel):
    vaccine_id: int
    vaccine_name: str
    sealed_vials: int
    open_vials: int
    nearest_sealed_expiry: date | None

class LowStockAlert(BaseModel):
    vaccine_id: int
    vaccine_name: str
    sealed_vials: int

class StockAlertsResponse(BaseModel):
    expiring_open_vials: List[VialWithVaccineResponse]
    low_stock: List[LowStockAlert]

class SweepResponse(BaseModel):
    expired_vial_ids: List[int]
