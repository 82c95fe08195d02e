from pydantic import BaseModel, ConfigDict, Field


class VaccineCreate(BaseModel):
    name: str
    doses_per_vial: int = Field(..., gt=0, description="Doses in one sealed vial")
    usable_hours: int = Field(..., gt=0, description="Hours a vial stays usable once opened")
    target_group: str | None = None
    schedule_doses: int = Field(1, gt=0)
    min_age_months: int = Field(0, ge=0)
    max_age_months: int = Field(1200, ge=0)


class VaccineUpdate(BaseModel):
    name: str | None = None
    doses_per_vial: int | None = Field(None, gt=0)
    usable_hours: int | None = Field(None, gt=0)
    target_group: str | None = None
    schedule_doses: int | None = Field(None, gt=0)
    min_age_months: int | None = Field(None, ge=0)
    max_age_months: int | None = Field(None, ge=0)


class VaccineResponse(BaseModel):
    id: int
    name: str
    doses_per_vial: int
    usable_hours: int
    target_group: str | None
    schedule_doses: int
    min_age_months: int
    max_age_months: int

    model_config = ConfigDict(from_attributes=True)
