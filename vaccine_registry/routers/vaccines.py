# vaccine_registry/routers/vaccines.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_admin_user, get_current_user
from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.vials import Vial
from vaccine_registry.schemas.vaccine import (
    VaccineCreate,
    VaccineUpdate,
    VaccineResponse,
)

router = APIRouter(
    prefix="/vaccines",
    tags=["Vaccines"],
)


@router.get("", response_model=list[VaccineResponse])
def list_vaccines(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return db.query(Vaccine).order_by(Vaccine.name.asc()).all()


@router.post("", response_model=VaccineResponse, status_code=status.HTTP_201_CREATED)
def create_vaccine(
    vaccine_data: VaccineCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    if db.query(Vaccine).filter(Vaccine.name == vaccine_data.name).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vaccine with this name already exists",
        )

    if vaccine_data.min_age_months > vaccine_data.max_age_months:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Minimum age cannot be greater than maximum age",
        )

    vaccine = Vaccine(**vaccine_data.model_dump())

    db.add(vaccine)
    db.commit()
    db.refresh(vaccine)

    return vaccine


@router.put("/{vaccine_id}", response_model=VaccineResponse)
def update_vaccine(
    vaccine_id: int,
    vaccine_data: VaccineUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    vaccine = db.query(Vaccine).filter(Vaccine.id == vaccine_id).first()

    if not vaccine:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vaccine not found",
        )

    changes = {
        field: value
        for field, value in vaccine_data.model_dump(exclude_unset=True).items()
        if value is not None
    }

    new_name = changes.get("name")
    if new_name and new_name != vaccine.name:
        if db.query(Vaccine).filter(Vaccine.name == new_name).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Vaccine with this name already exists",
            )

    new_min = changes.get("min_age_months", vaccine.min_age_months)
    new_max = changes.get("max_age_months", vaccine.max_age_months)
    if new_min > new_max:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Minimum age cannot be greater than maximum age",
        )

    # Vials already opened keep the window they were given at opening time
    for field, value in changes.items():
        setattr(vaccine, field, value)

    db.commit()
    db.refresh(vaccine)

    return vaccine


@router.delete("/{vaccine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vaccine(
    vaccine_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    vaccine = db.query(Vaccine).filter(Vaccine.id == vaccine_id).first()

    if not vaccine:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vaccine not found",
        )

    if db.query(Vial).filter(Vial.vaccine_id == vaccine.id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete a vaccine that has vials in stock history",
        )

    db.delete(vaccine)
    db.commit()

    return None
