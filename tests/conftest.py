# tests/conftest.py
import os

# Must be set before pln_care is imported: its settings are read at import time.
os.environ["DB_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from pln_care.app import create_app
from pln_care.config import Settings
from pln_care.db import Database
from pln_care.enums import Role
from pln_care.models.user import User
from pln_care.security import create_access_token, get_password_hash

PASSWORD = "password123"
# bcrypt is slow on purpose; hash once for the whole run
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    yield from database.session()


@pytest.fixture
def users(database):
    """Admin plus two field officers and a supervisor, committed."""
    created = {}
    for db in database.session():
        for key, email, name, role in [
            ("admin", "admin@pln.co.id", "Admin Utama PLN", Role.ADMIN_UTAMA),
            ("officer_x", "petugas1@pln.co.id", "Budi Santoso", Role.PETUGAS_LAPANGAN),
            ("officer_y", "petugas2@pln.co.id", "Siti Nurhaliza", Role.PETUGAS_LAPANGAN),
            ("supervisor", "supervisor@pln.co.id", "Sari Supervisor", Role.SUPERVISOR),
        ]:
            user = User(email=email, name=name, role=role, hashed_password=PASSWORD_HASH, phone="0812000000")
            db.add(user)
            created[key] = user
        db.commit()
        ids = {key: user.id for key, user in created.items()}
    return ids


@pytest.fixture
def app(database):
    return create_app(Settings(DB_URL="sqlite://"), database=database)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def bearer(user_id: str, role: Role) -> dict:
    token = create_access_token({"sub": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(users):
    return {
        "admin": bearer(users["admin"], Role.ADMIN_UTAMA),
        "officer_x": bearer(users["officer_x"], Role.PETUGAS_LAPANGAN),
        "officer_y": bearer(users["officer_y"], Role.PETUGAS_LAPANGAN),
        "supervisor": bearer(users["supervisor"], Role.SUPERVISOR),
    }
