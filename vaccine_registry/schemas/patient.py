# schemas/patient.py

from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import List, Literal


class PatientBase(BaseModel):
    name: str
    birth_date: date
    sex: Literal["M", "F"] | None = None
    pregnant: bool = False
    childbearing_age: bool = False
    postpartum: bool = False
    delivery_date: date | None = None
    locality: str | None = None
    guardian_contact: str | None = None
    id_number: str | None = None


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    name: str | None = None
    birth_date: date | None = None
    sex: Literal["M", "F"] | None = None
    pregnant: bool | None = None
    childbearing_age: bool | None = None
    postpartum: bool | None = None
    delivery_date: date | None = None
    locality: str | None = None
    guardian_contact: str | None = None
    id_number: str | None = None


class PatientResponse(PatientBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VaccinationHistoryItem(BaseModel):
    id: int
    vaccine_id: int
    vaccine_name: str
    vial_id: int
    dose_number: int
    administered_at: datetime
    responsible_name: str | None
    notes: str | None


class PatientDetailResponse(PatientResponse):
    history: List[VaccinationHistoryItem]
