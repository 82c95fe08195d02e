# vaccine_registry/routers/patients.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_current_user
from vaccine_registry.models.administrations import Administration
from vaccine_registry.models.patients import Patient
from vaccine_registry.models.users import User
from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.schemas.patient import (
    PatientCreate,
    PatientUpdate,
    PatientResponse,
    PatientDetailResponse,
    VaccinationHistoryItem,
)

router = APIRouter(
    prefix="/patients",
    tags=["Patients"],
)


def _get_patient_or_404(db: Session, patient_id: int) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()

    if not patient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )

    return patient


def _ensure_unique_id_number(db: Session, id_number: str | None, patient_id: int | None = None):
    if not id_number:
        return

    query = db.query(Patient).filter(Patient.id_number == id_number)
    if patient_id is not None:
        query = query.filter(Patient.id != patient_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A patient with this identification number already exists",
        )


@router.get("", response_model=list[PatientResponse])
def list_patients(
    q: str | None = Query(None, description="Search by name or identification number"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    query = db.query(Patient)

    if q and q.strip():
        term = f"%{q.strip()}%"
        return (
            query
            .filter(or_(Patient.name.ilike(term), Patient.id_number.ilike(term)))
            .order_by(Patient.name.asc())
            .all()
        )

    return query.order_by(Patient.created_at.desc(), Patient.id.desc()).limit(50).all()


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def create_patient(
    patient_data: PatientCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _ensure_unique_id_number(db, patient_data.id_number)

    patient = Patient(**patient_data.model_dump())

    db.add(patient)
    db.commit()
    db.refresh(patient)

    return patient


@router.get("/{patient_id}", response_model=PatientDetailResponse)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    patient = _get_patient_or_404(db, patient_id)

    rows = (
        db.query(Administration, Vaccine.name, User.full_name)
        .join(Vaccine, Administration.vaccine_id == Vaccine.id)
        .outerjoin(User, Administration.user_id == User.id)
        .filter(Administration.patient_id == patient.id)
        .order_by(Administration.administered_at.desc(), Administration.id.desc())
        .all()
    )

    history = [
        VaccinationHistoryItem(
            id=administration.id,
            vaccine_id=administration.vaccine_id,
            vaccine_name=vaccine_name,
            vial_id=administration.vial_id,
            dose_number=administration.dose_number,
            administered_at=administration.administered_at,
            responsible_name=responsible_name,
            notes=administration.notes,
        )
        for administration, vaccine_name, responsible_name in rows
    ]

    return PatientDetailResponse(
        **PatientResponse.model_validate(patient).model_dump(),
        history=history,
    )


@router.put("/{patient_id}", response_model=PatientResponse)
def update_patient(
    patient_id: int,
    patient_data: PatientUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    patient = _get_patient_or_404(db, patient_id)

    changes = patient_data.model_dump(exclude_unset=True)
    if "id_number" in changes:
        _ensure_unique_id_number(db, changes["id_number"], patient.id)

    for field, value in changes.items():
        if value is None and field in ("name", "birth_date"):
            continue
        setattr(patient, field, value)

    db.commit()
    db.refresh(patient)

    return patient


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    patient = _get_patient_or_404(db, patient_id)

    if db.query(Administration).filter(Administration.patient_id == patient.id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete a patient with recorded vaccinations",
        )

    db.delete(patient)
    db.commit()

    return None
