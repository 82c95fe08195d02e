# vaccine_registry/models/patients.py

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, Index, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from vaccine_registry.database import Base


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    birth_date = Column(Date, nullable=False)
    sex = Column(String(1), nullable=True)

    pregnant = Column(Boolean, default=False, nullable=False)
    childbearing_age = Column(Boolean, default=False, nullable=False)
    postpartum = Column(Boolean, default=False, nullable=False)
    delivery_date = Column(Date, nullable=True)

    locality = Column(String, nullable=True)
    guardian_contact = Column(String, nullable=True)
    id_number = Column(String, unique=True, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    administrations = relationship("Administration", back_populates="patient")

    __table_args__ = (
        Index("ix_patients_name", "name"),
        CheckConstraint("sex IN ('M', 'F')", name="ck_patients_sex"),
    )
