# vaccine_registry/models/administrations.py

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from vaccine_registry.database import Base


class Administration(Base):
    __tablename__ = "administrations"

    id = Column(Integer, primary_key=True, index=True)

    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    vaccine_id = Column(Integer, ForeignKey("vaccines.id"), nullable=False, index=True)
    # No cascade: a vial with recorded doses cannot be deleted
    vial_id = Column(Integer, ForeignKey("vials.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    dose_number = Column(Integer, nullable=False)
    administered_at = Column(DateTime, nullable=False)
    notes = Column(String, nullable=True)

    patient = relationship("Patient", back_populates="administrations")
    vaccine = relationship("Vaccine")
    user = relationship("User")

    __table_args__ = (
        Index("ix_administrations_administered_at", "administered_at"),
    )
