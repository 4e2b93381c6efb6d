from fastapi import FastAPI
from fastapi.testclient import TestClient

from pulse.core.database import get_db
from pulse.models.audit_log import AuditLog
from pulse.models.pin_attempt import PinAttempt
from pulse.models.staff_account import StaffAccount
from pulse.routers.pin import router as pin_router
from pulse.routers.staff import router as staff_router
from pulse.services.pin_policy import utcnow
from pulse.services.pin_verification import verify_pin_login
from pulse.services.tokens import create_access_token
from tests.fixtures_data import ACME_OWNER, GLOBEX_STAFF, JANE_DOE, MIKE_MANAGER, build_session_factory, seed_acme

NOW = utcnow().replace(microsecond=0)


def _build_client():
    db = build_session_factory()()
    seed_acme(db, now=NOW)

    app = FastAPI()
    app.include_router(staff_router)
    app.include_router(pin_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def _auth(account: dict) -> dict:
    token = create_access_token(account["id"], tenant_id=account["tenant_id"], role=account["role"])
    return {"Authorization": f"Bearer {token}"}


def test_owner_provisions_staff_with_forced_rotation():
    client, db = _build_client()

    response = client.post(
        "/api/staff",
        json={"full_name": "Sam Courier", "role": "delivery", "staff_code": "SC01", "pin": "654321"},
        headers=_auth(ACME_OWNER),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["must_change_pin"] is True
    assert body["login_link"] == "/ACME/SC01"
    login = verify_pin_login(db, pin="654321", tenant_id=1, staff_id=body["id"])
    assert login["success"] is True
    assert login["must_change_pin"] is True


def test_staff_code_conflict_is_case_insensitive():
    client, _ = _build_client()

    response = client.post(
        "/api/staff",
        json={"full_name": "Other Jane", "role": "delivery", "staff_code": "jd01", "pin": "654321"},
        headers=_auth(ACME_OWNER),
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "conflict"


def test_provisioning_rejects_owner_role():
    client, _ = _build_client()

    response = client.post(
        "/api/staff",
        json={"full_name": "Second Owner", "role": "owner", "staff_code": "OW02", "pin": "654321"},
        headers=_auth(ACME_OWNER),
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "validation_error"


def test_delivery_staff_cannot_manage_staff():
    client, _ = _build_client()

    response = client.get("/api/staff", headers=_auth(JANE_DOE))

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_list_staff_is_tenant_scoped_and_hides_owner():
    client, _ = _build_client()

    response = client.get("/api/staff", headers=_auth(MIKE_MANAGER))

    assert response.status_code == 200
    assert [member["staff_code"] for member in response.json()] == ["JD01", "MM01"]


def test_reset_pin_unlocks_and_forces_rotation():
    client, db = _build_client()
    for _ in range(5):
        client.post("/api/pin/verify", json={"pin": "000000", "tenant_id": 1, "staff_id": 2})
    assert db.query(PinAttempt).filter(PinAttempt.staff_id == 2).one().locked is True

    response = client.post("/api/staff/2/pin/reset", json={"pin": "777777"}, headers=_auth(MIKE_MANAGER))
    login = client.post("/api/pin/verify", json={"pin": "777777", "tenant_id": 1, "staff_id": 2})

    assert response.status_code == 200
    assert response.json()["must_change_pin"] is True
    assert db.query(PinAttempt).filter(PinAttempt.staff_id == 2).count() == 0
    assert login.json()["success"] is True
    assert login.json()["must_change_pin"] is True
    assert db.query(AuditLog).filter(AuditLog.action == "pin_reset").count() == 1


def test_cross_tenant_targets_are_not_found():
    client, _ = _build_client()

    response = client.post(
        f"/api/staff/{GLOBEX_STAFF['id']}/pin/reset",
        json={"pin": "777777"},
        headers=_auth(ACME_OWNER),
    )

    assert response.status_code == 404


def test_deactivated_staff_cannot_log_in():
    client, db = _build_client()

    response = client.post("/api/staff/2/deactivate", headers=_auth(ACME_OWNER))
    login = client.post("/api/pin/verify", json={"pin": "482913", "tenant_id": 1, "staff_id": 2})
    roster = client.post("/api/pin/verify", json={"pin": "482913", "tenant_id": 1})

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert login.json()["success"] is False
    assert roster.json()["success"] is False
    assert db.query(StaffAccount).filter(StaffAccount.id == 2).one().is_active is False


def test_manager_cannot_deactivate():
    client, _ = _build_client()

    response = client.post("/api/staff/2/deactivate", headers=_auth(MIKE_MANAGER))

    assert response.status_code == 403


def test_owner_cannot_be_deactivated():
    client, _ = _build_client()

    response = client.post(f"/api/staff/{ACME_OWNER['id']}/deactivate", headers=_auth(ACME_OWNER))

    assert response.status_code == 400


def test_login_link_for_staff():
    client, _ = _build_client()

    response = client.get("/api/staff/2/login-link", headers=_auth(ACME_OWNER))

    assert response.json() == {"staff_id": 2, "login_link": "/ACME/JD01"}
