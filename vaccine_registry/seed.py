# vaccine_registry/seed.py
#
# First-start data: the two default accounts and the national
# immunization catalog. Nothing is touched once rows exist.

import logging

from sqlalchemy.orm import Session

from vaccine_registry.core.config import settings
from vaccine_registry.core.hashing import hash_password
from vaccine_registry.models.users import User
from vaccine_registry.models.vaccines import Vaccine

logger = logging.getLogger(__name__)

# name, doses_per_vial, usable_hours, target_group, schedule_doses, min_age_months, max_age_months
INITIAL_VACCINES = [
    ("BCG", 20, 6, "child", 1, 0, 12),
    ("HepB0", 1, 24, "child", 1, 0, 1),
    ("Polio 0", 20, 72, "child", 1, 0, 1),
    ("Polio 1", 20, 72, "child", 1, 2, 60),
    ("Penta 1", 10, 168, "child", 1, 2, 24),
    ("Pneumo 1", 1, 168, "child", 1, 2, 24),
    ("Rotavirus 1", 1, 24, "child", 1, 2, 4),
    ("HPV", 1, 168, "hpv", 2, 108, 144),
    ("Td Toxoid", 10, 168, "childbearing", 5, 180, 600),
    ("Vitamin A", 1, 24, "postpartum", 1, 180, 600),
]


def seed_data(db: Session) -> None:
    if db.query(User).count() == 0:
        db.add_all([
            User(
                username="admin",
                password_hash=hash_password(settings.SEED_ADMIN_PASSWORD),
                role="admin",
                full_name="Clinic Administrator",
            ),
            User(
                username="nurse",
                password_hash=hash_password(settings.SEED_NURSE_PASSWORD),
                role="nurse",
                full_name="Nurse on Duty",
            ),
        ])
        logger.info("Seeded default admin and nurse accounts")

    if db.query(Vaccine).count() == 0:
        db.add_all([
            Vaccine(
                name=name,
                doses_per_vial=doses_per_vial,
                usable_hours=usable_hours,
                target_group=target_group,
                schedule_doses=schedule_doses,
                min_age_months=min_age_months,
                max_age_months=max_age_months,
            )
            for name, doses_per_vial, usable_hours, target_group, schedule_doses, min_age_months, max_age_months
            in INITIAL_VACCINES
        ])
        logger.info("Seeded %d catalog vaccines", len(INITIAL_VACCINES))

    db.commit()
