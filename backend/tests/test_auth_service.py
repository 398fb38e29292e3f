# Overview: Pytest coverage for password rules, accounts and login.

import pytest

from cargodesk.errors import ConflictError, ValidationError
from cargodesk.services import auth_service
from cargodesk.services.auth_service import PasswordValidationError
from cargodesk.services.session_service import create_session, validate_session

from conftest import PASSWORD


class TestPasswordStrength:
    @pytest.mark.parametrize("password", [
        "Short1!",
        "alllowercase1!",
        "ALLUPPERCASE1!",
        "NoDigits!!",
        "NoSpecial123",
    ])
    def test_weak_passwords(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_strong_password(self):
        auth_service.validate_password_strength(PASSWORD)

    def test_hash_round_trip(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert auth_service.verify_password(PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong123!", hashed)
        assert not auth_service.verify_password(PASSWORD, "not-a-hash")


class TestUsers:
    def test_new_user_starts_with_zero_balance(self, db_session, operator_a, branch_a1):
        user = auth_service.create_user(
            operator_id=operator_a.id,
            full_name="Kiran",
            mobile="9100000050",
            password=PASSWORD,
            branch_id=branch_a1.id,
        )
        assert user.cargo_balance == 0
        assert user.role == "staff"

    def test_mobile_is_globally_unique(self, db_session, operator_b, staff_a):
        with pytest.raises(ConflictError):
            auth_service.create_user(
                operator_id=operator_b.id, full_name="Dup", mobile=staff_a.mobile, password=PASSWORD
            )

    def test_branch_must_belong_to_operator(self, db_session, operator_a, branch_b1):
        with pytest.raises(ValidationError):
            auth_service.create_user(
                operator_id=operator_a.id,
                full_name="Wrong Branch",
                mobile="9100000051",
                password=PASSWORD,
                branch_id=branch_b1.id,
            )

    def test_cargo_balance_not_writable(self, db_session, operator_a, staff_a):
        with pytest.raises(ValidationError):
            auth_service.update_user(staff_a.id, {"cargo_balance": 1000}, operator_id=operator_a.id)

    def test_unknown_role(self, db_session, operator_a, staff_a):
        with pytest.raises(ValidationError):
            auth_service.update_user(staff_a.id, {"role": "owner"}, operator_id=operator_a.id)


class TestSessionRevocationOnUpdate:
    def test_password_change_revokes_sessions(self, db_session, operator_a, staff_a):
        session, token = create_session(staff_a.id)

        auth_service.update_user(staff_a.id, {"password": "Changed456!"}, operator_id=operator_a.id)
        db_session.commit()

        assert session.is_revoked
        assert session.revoked_reason == "Password changed"
        assert validate_session(token) is None
        assert auth_service.authenticate(staff_a.mobile, "Changed456!").id == staff_a.id

    def test_deactivation_revokes_sessions(self, db_session, operator_a, staff_a):
        session, _ = create_session(staff_a.id)

        auth_service.update_user(staff_a.id, {"status": "Inactive"}, operator_id=operator_a.id)
        db_session.commit()

        assert session.is_revoked
        assert session.revoked_reason == "User account deactivated"

    def test_other_edits_keep_sessions(self, db_session, operator_a, staff_a):
        session, token = create_session(staff_a.id)

        auth_service.update_user(staff_a.id, {"full_name": "Ravi K"}, operator_id=operator_a.id)
        db_session.commit()

        assert not session.is_revoked
        assert validate_session(token).user.id == staff_a.id

    def test_weak_password_keeps_sessions(self, db_session, operator_a, staff_a):
        session, _ = create_session(staff_a.id)

        with pytest.raises(PasswordValidationError):
            auth_service.update_user(staff_a.id, {"password": "weak"}, operator_id=operator_a.id)
        db_session.rollback()

        assert not session.is_revoked


class TestAuthenticate:
    def test_valid_credentials(self, db_session, staff_a):
        user = auth_service.authenticate(staff_a.mobile, PASSWORD)
        assert user.id == staff_a.id
        assert user.last_login_at is not None

    def test_wrong_password(self, db_session, staff_a):
        assert auth_service.authenticate(staff_a.mobile, "Wrong123!") is None

    def test_inactive_operator(self, db_session, operator_a, staff_a):
        operator_a.status = "inactive"
        db_session.commit()
        assert auth_service.authenticate(staff_a.mobile, PASSWORD) is None
