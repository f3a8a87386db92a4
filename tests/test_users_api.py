# tests/test_users_api.py
from fastapi.testclient import TestClient

from conftest import PASSWORD, bearer
from pln_care.app import create_app
from pln_care.config import Settings
from pln_care.enums import Role


def _login(client, email, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_returns_token_and_user(client, users):
    r = _login(client, "petugas1@pln.co.id")
    assert r.status_code == 200
    data = r.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "PETUGAS_LAPANGAN"
    assert data["user"]["name"] == "Budi Santoso"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == users["officer_x"]


def test_login_is_case_insensitive_on_email(client, users):
    assert _login(client, "Petugas1@PLN.co.id").status_code == 200


def test_login_wrong_password(client, users):
    r = _login(client, "petugas1@pln.co.id", "salah-sandi")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


def test_inactive_account_cannot_login(client, users, headers):
    r = client.put(f"/api/users/{users['officer_y']}", json={"isActive": False}, headers=headers["admin"])
    assert r.status_code == 200
    assert r.json()["isActive"] is False

    r = _login(client, "petugas2@pln.co.id")
    assert r.status_code == 401
    assert r.json()["detail"] == "Account is inactive"
    # existing tokens stop working as well
    assert client.get("/api/auth/me", headers=headers["officer_y"]).status_code == 401


def test_register_always_creates_field_officer(client, users):
    r = client.post(
        "/api/auth/register",
        json={"name": "Joko", "email": "joko@pln.co.id", "password": "rahasia1", "role": "ADMIN_UTAMA"},
    )
    assert r.status_code == 201
    assert r.json()["role"] == "PETUGAS_LAPANGAN"

    dup = client.post(
        "/api/auth/register",
        json={"name": "Joko", "email": "JOKO@pln.co.id", "password": "rahasia1"},
    )
    assert dup.status_code == 400


def test_logout(client, headers):
    r = client.post("/api/auth/logout", headers=headers["officer_x"])
    assert r.status_code == 200


def test_list_users_admin_only(client, headers, users):
    client.post(
        "/api/complaints",
        json={"title": "Meteran Rusak", "description": "Angka tidak bergerak", "location": "Gudang"},
        headers=headers["officer_x"],
    )
    r = client.get("/api/users", headers=headers["admin"])
    assert r.status_code == 200
    by_id = {u["id"]: u for u in r.json()}
    assert len(by_id) == 4
    assert by_id[users["officer_x"]]["complaintCount"] == 1
    assert by_id[users["officer_y"]]["complaintCount"] == 0

    assert client.get("/api/users", headers=headers["officer_x"]).status_code == 403


def test_get_user_self_or_admin(client, headers, users):
    assert client.get(f"/api/users/{users['officer_x']}", headers=headers["officer_x"]).status_code == 200
    assert client.get(f"/api/users/{users['officer_y']}", headers=headers["officer_x"]).status_code == 403
    assert client.get(f"/api/users/{users['officer_y']}", headers=headers["admin"]).status_code == 200
    assert client.get("/api/users/nope", headers=headers["admin"]).status_code == 404


def test_admin_creates_user(client, headers):
    payload = {"name": "Rina", "email": "rina@pln.co.id", "password": "rahasia1", "role": "SUPERVISOR"}
    r = client.post("/api/users", json=payload, headers=headers["admin"])
    assert r.status_code == 201
    assert r.json()["role"] == "SUPERVISOR"

    assert client.post("/api/users", json=payload, headers=headers["admin"]).status_code == 400
    assert client.post("/api/users", json=payload, headers=headers["officer_x"]).status_code == 403


def test_self_update_cannot_change_role(client, headers, users):
    r = client.put(
        f"/api/users/{users['officer_x']}",
        json={"name": "Budi S.", "role": "ADMIN_UTAMA"},
        headers=headers["officer_x"],
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Budi S."
    assert r.json()["role"] == "PETUGAS_LAPANGAN"


def test_update_email_conflict(client, headers, users):
    r = client.put(
        f"/api/users/{users['officer_x']}",
        json={"email": "petugas2@pln.co.id"},
        headers=headers["officer_x"],
    )
    assert r.status_code == 400


def test_last_admin_cannot_be_demoted(client, headers, users):
    r = client.put(
        f"/api/users/{users['admin']}",
        json={"role": "PETUGAS_LAPANGAN"},
        headers=headers["admin"],
    )
    assert r.status_code == 400


def test_change_password(client, headers, users):
    url = f"/api/users/{users['officer_x']}/change-password"
    wrong = client.put(url, json={"currentPassword": "salah", "newPassword": "baru1234"}, headers=headers["officer_x"])
    assert wrong.status_code == 400
    short = client.put(url, json={"currentPassword": PASSWORD, "newPassword": "123"}, headers=headers["officer_x"])
    assert short.status_code == 400
    other = client.put(url, json={"currentPassword": PASSWORD, "newPassword": "baru1234"}, headers=headers["admin"])
    assert other.status_code == 403

    ok = client.put(url, json={"currentPassword": PASSWORD, "newPassword": "baru1234"}, headers=headers["officer_x"])
    assert ok.status_code == 200
    assert _login(client, "petugas1@pln.co.id").status_code == 401
    assert _login(client, "petugas1@pln.co.id", "baru1234").status_code == 200


def test_delete_user(client, headers, users):
    assert client.delete(f"/api/users/{users['admin']}", headers=headers["admin"]).status_code == 400
    assert client.delete(f"/api/users/{users['officer_y']}", headers=headers["officer_x"]).status_code == 403

    r = client.delete(f"/api/users/{users['officer_y']}", headers=headers["admin"])
    assert r.status_code == 200
    assert client.get(f"/api/users/{users['officer_y']}", headers=headers["admin"]).status_code == 404


def test_deleting_officer_keeps_their_complaints(client, headers, users):
    complaint = client.post(
        "/api/public/complaints",
        json={
            "title": "Tiang Miring",
            "description": "Tiang listrik hampir roboh",
            "location": "Jl. B",
            "reporterName": "Dewi",
            "reporterEmail": "dewi@pln.co.id",
            "reporterPhone": "0811",
        },
    ).json()
    client.post(
        f"/api/complaints/{complaint['complaintId']}/assign",
        json={"assignedTo": users["officer_y"]},
        headers=headers["admin"],
    )
    client.delete(f"/api/users/{users['officer_y']}", headers=headers["admin"])

    detail = client.get(f"/api/complaints/{complaint['complaintId']}", headers=headers["admin"]).json()
    assert detail["assignedTo"] is None
    assert detail["status"] == "ASSIGNED"


def test_officer_with_open_assignment_keeps_field_role(client, headers, users):
    complaint = client.post(
        "/api/public/complaints",
        json={
            "title": "Kabel Putus",
            "description": "Kabel listrik putus",
            "location": "Jl. A",
            "reporterName": "Andi",
            "reporterEmail": "a@b.com",
            "reporterPhone": "0812",
        },
    ).json()
    client.post(
        f"/api/complaints/{complaint['complaintId']}/assign",
        json={"assignedTo": users["officer_x"]},
        headers=headers["admin"],
    )

    r = client.put(f"/api/users/{users['officer_x']}", json={"role": "SUPERVISOR"}, headers=headers["admin"])
    assert r.status_code == 400
    assert client.get(f"/api/users/{users['officer_x']}", headers=headers["admin"]).json()["role"] == "PETUGAS_LAPANGAN"

    # no open assignments: the role change goes through
    r = client.put(f"/api/users/{users['officer_y']}", json={"role": "SUPERVISOR"}, headers=headers["admin"])
    assert r.status_code == 200
    assert r.json()["role"] == "SUPERVISOR"


def test_tokens_follow_the_app_settings(database, users):
    app = create_app(Settings(DB_URL="sqlite://", JWT_SECRET="another-secret"), database=database)
    with TestClient(app) as other:
        foreign = bearer(users["officer_x"], Role.PETUGAS_LAPANGAN)
        assert other.get("/api/auth/me", headers=foreign).status_code == 401

        token = _login(other, "petugas1@pln.co.id").json()["access_token"]
        me = other.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == users["officer_x"]
