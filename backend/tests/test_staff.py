"""Tests for staff management and capability checks."""

import pytest

from tabpos.core.exceptions import PermissionDenied, ValidationFailed
from tabpos.core.rbac import TokenData, UserRole
from tabpos.core.security import verify_password
from tabpos.models.staff import PERMISSION_KEYS, Staff
from tabpos.models.user import User
from tabpos.services.staff_service import (
    StaffService, validate_pin, validate_shift_time, validate_work_days,
)


@pytest.fixture
def service(db_session, tenant):
    return StaffService(db_session, tenant.id)


@pytest.fixture
def admin_caller(tenant):
    return TokenData(user_id="1", username="admin", role=UserRole.ADMIN, tenant_id=tenant.id, name="Admin")


def _create(service, caller, **overrides):
    payload = {
        "name": "Emre",
        "username": "emre",
        "password": "secret99",
        "pin": "1234",
        "permissions": {"take_payment": False},
    }
    payload.update(overrides)
    return service.manage("create", payload, caller)["staff"]


class TestValidators:
    def test_work_days_in_calendar_order(self):
        assert validate_work_days(["Friday", "monday", "friday"]) == ["monday", "friday"]

    @pytest.mark.parametrize("days", [[], ["funday"], "monday"])
    def test_bad_work_days(self, days):
        with pytest.raises(ValidationFailed):
            validate_work_days(days)

    @pytest.mark.parametrize("pin", ["123", "1234567", "12a4", ""])
    def test_bad_pins(self, pin):
        with pytest.raises(ValidationFailed):
            validate_pin(pin)

    def test_shift_time_format(self):
        assert validate_shift_time("08:30", "Shift start") == "08:30"
        with pytest.raises(ValidationFailed):
            validate_shift_time("25:00", "Shift start")


class TestManage:
    def test_non_admin_rejected(self, service, tenant):
        caller = TokenData(user_id="2", username="ayse", role=UserRole.STAFF, tenant_id=tenant.id)
        with pytest.raises(PermissionDenied):
            _create(service, caller)

    def test_admin_of_other_tenant_rejected(self, service, other_tenant):
        caller = TokenData(user_id="1", username="boss", role=UserRole.ADMIN, tenant_id=other_tenant.id)
        with pytest.raises(PermissionDenied):
            _create(service, caller)

    def test_unknown_action(self, service, admin_caller):
        with pytest.raises(ValidationFailed):
            service.manage("promote", {}, admin_caller)

    def test_create_makes_login_and_hides_hashes(self, db_session, service, admin_caller):
        staff = _create(service, admin_caller)
        assert staff["has_pin"] is True
        assert "pin_hash" not in staff
        assert staff["permissions"]["take_payment"] is False
        assert staff["permissions"]["take_orders"] is True
        assert set(staff["permissions"]) == set(PERMISSION_KEYS)

        user = db_session.get(User, staff["user_id"])
        assert user.role == UserRole.STAFF
        assert verify_password("secret99", user.password_hash)

    def test_username_must_be_free(self, service, admin_caller, admin_user):
        with pytest.raises(ValidationFailed):
            _create(service, admin_caller, username="admin")

    def test_invalid_payload_creates_nothing(self, db_session, service, admin_caller):
        with pytest.raises(ValidationFailed):
            _create(service, admin_caller, shift_end="late")
        assert db_session.query(Staff).count() == 0
        assert db_session.query(User).count() == 0

    def test_update_replaces_permissions_and_syncs_user(self, db_session, service, admin_caller):
        staff = _create(service, admin_caller)
        updated = service.manage("update", {
            "staff_id": staff["id"],
            "name": "Emre Y.",
            "is_active": False,
            "permissions": {"cancel_items": False},
        }, admin_caller)["staff"]

        assert updated["permissions"]["take_payment"] is True
        assert updated["permissions"]["cancel_items"] is False
        user = db_session.get(User, staff["user_id"])
        assert user.name == "Emre Y."
        assert user.is_active is False

    def test_bad_update_changes_nothing(self, db_session, service, admin_caller):
        staff = _create(service, admin_caller)
        with pytest.raises(ValidationFailed):
            service.manage("update", {
                "staff_id": staff["id"], "name": "Changed", "work_days": ["someday"],
            }, admin_caller)
        db_session.rollback()
        assert service.get_staff(staff["id"]).name == "Emre"

    def test_delete_removes_login(self, db_session, service, admin_caller):
        staff = _create(service, admin_caller)
        service.manage("delete", {"staff_id": staff["id"]}, admin_caller)
        assert db_session.query(Staff).count() == 0
        assert db_session.get(User, staff["user_id"]) is None

    def test_verify_pin(self, service, admin_caller):
        staff = _create(service, admin_caller)
        assert service.manage("verify_pin", {"staff_id": staff["id"], "pin": "1234"}, admin_caller)["valid"] is True
        assert service.manage("verify_pin", {"staff_id": staff["id"], "pin": "9999"}, admin_caller)["valid"] is False


class TestCapabilities:
    def test_login_without_staff_row_has_everything(self, service, staff_user):
        assert service.user_has_permission(staff_user.id, "take_payment") is True

    def test_disabled_flag_denies(self, service, admin_caller):
        staff = _create(service, admin_caller)
        assert service.user_has_permission(staff["user_id"], "take_payment") is False
        assert service.user_has_permission(staff["user_id"], "take_orders") is True

    def test_inactive_staff_has_nothing(self, service, admin_caller):
        staff = _create(service, admin_caller)
        service.manage("update", {"staff_id": staff["id"], "is_active": False}, admin_caller)
        assert service.user_has_permission(staff["user_id"], "take_orders") is False

    def test_pin_login(self, service, admin_caller):
        staff = _create(service, admin_caller)
        assert service.authenticate_pin("emre", "1234").id == staff["user_id"]
        assert service.authenticate_pin("emre", "0000") is None
        assert service.authenticate_pin("nobody", "1234") is None
