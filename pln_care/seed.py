"""Demo data: ``python -m pln_care.seed``."""
from __future__ import annotations

import logging
import os
from typing import Optional

from sqlalchemy.orm import Session

from .config import settings
from .db import Database
from .enums import Priority, Role
from .lifecycle import ComplaintLifecycle
from .models.complaint import Complaint
from .models.user import User
from .security import get_password_hash

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"


def upsert_user(db: Session, email: str, name: str, role: Role, password: str, phone: Optional[str] = None) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user:
        logger.info("User already exists: %s", email)
        return user
    user = User(
        email=email,
        name=name,
        phone=phone,
        role=role,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    logger.info("User created: %s (%s)", email, role.value)
    return user


def seed(database: Database) -> None:
    database.create_all()
    admin_email = os.getenv("ADMIN_EMAIL", "admin@pln.co.id")
    admin_password = os.getenv("ADMIN_PASSWORD", DEMO_PASSWORD)

    for db in database.session():
        admin = upsert_user(db, admin_email, "Admin Utama PLN", Role.ADMIN_UTAMA, admin_password)
        officer1 = upsert_user(
            db, "petugas1@pln.co.id", "Budi Santoso", Role.PETUGAS_LAPANGAN, DEMO_PASSWORD, "081234567801"
        )
        upsert_user(
            db, "petugas2@pln.co.id", "Siti Nurhaliza", Role.PETUGAS_LAPANGAN, DEMO_PASSWORD, "081234567802"
        )

        if db.query(Complaint).count() == 0:
            lifecycle = ComplaintLifecycle(db)
            lifecycle.create_complaint(
                {
                    "title": "Kabel Putus di Jalan Sudirman",
                    "description": "Terdapat kabel listrik yang putus dan menggantung di Jalan Sudirman No. 45",
                    "location": "Jl. Sudirman No. 45, Jakarta",
                    "latitude": -6.2088,
                    "longitude": 106.8456,
                    "priority": Priority.HIGH,
                },
                reporter=admin,
            )
            second = lifecycle.create_complaint(
                {
                    "title": "Tiang Listrik Miring",
                    "description": "Tiang listrik di depan rumah miring dan terlihat berbahaya",
                    "location": "Jl. Gatot Subroto No. 12, Jakarta",
                    "latitude": -6.2297,
                    "longitude": 106.8227,
                    "priority": Priority.MEDIUM,
                },
                reporter=admin,
            )
            lifecycle.assign(second, officer1.id, admin)
            logger.info("Sample complaints created")
        db.commit()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(levelname)s %(name)s: %(message)s")
    database = Database(settings.DB_URL)
    try:
        seed(database)
    finally:
        database.dispose()
