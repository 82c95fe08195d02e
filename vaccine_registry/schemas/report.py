# schemas/report.py

from pydantic import BaseModel
from datetime import date
from typing import List


class DashboardStatsResponse(BaseModel):
    doses_today: int
    patients_today: int
    open_vials: int
    low_stock_vaccines: int


class VaccineDoseCount(BaseModel):
    vaccine_id: int
    vaccine_name: str
    doses: int

class AdministrationReportResponse(BaseModel):
    start_date: date
    end_date: date
    total_doses: int
    total_patients: int
    by_vaccine: List[VaccineDoseCount]


class WastageByReason(BaseModel):
    reason: str
    vials: int
    doses_wasted: int

class WastageReportResponse(BaseModel):
    start_date: date
    end_date: date
    total_vials: int
    total_doses_wasted: int
    by_reason: List[WastageByReason]
    by_vaccine: List[VaccineDoseCount]
