# schemas/administration.py

from pydantic import BaseModel, ConfigDict
from datetime import datetime


class AdministrationCreate(BaseModel):
    patient_id: int
    vaccine_id: int
    notes: str | None = None


class AdministrationResponse(BaseModel):
    id: int
    patient_id: int
    vaccine_id: int
    vial_id: int
    user_id: int | None
    dose_number: int
    administered_at: datetime
    notes: str | None

    model_config = ConfigDict(from_attributes=True)
