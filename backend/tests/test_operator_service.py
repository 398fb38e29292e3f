# Overview: Pytest coverage for operator onboarding.

import pytest

from cargodesk.errors import ConflictError, NotFoundError, ValidationError
from cargodesk.services import operator_service


class TestOperatorCode:
    @pytest.mark.parametrize("code", ["ABC", "A1b", "9Z9", "abC"])
    def test_valid_codes(self, code):
        assert operator_service.validate_operator_code(code) == code

    @pytest.mark.parametrize("code", ["abc", "AB", "ABCD", "A-1", "123", "", None, 123])
    def test_invalid_codes(self, code):
        with pytest.raises(ValidationError):
            operator_service.validate_operator_code(code)


class TestCreateOperator:
    def test_defaults(self, db_session):
        operator = operator_service.create_operator(
            {"name": "Gamma Movers", "code": "GMV", "phone": "9000000003"}
        )
        db_session.commit()

        assert operator.booking_sequence == 0
        assert operator.status == "active"
        assert set(operator.payment_methods) == {"cash", "UPI"}

    def test_duplicate_code(self, db_session, operator_a):
        with pytest.raises(ConflictError):
            operator_service.create_operator({"name": "Other", "code": "ALP", "phone": "1"})

    def test_duplicate_name(self, db_session, operator_a):
        with pytest.raises(ConflictError):
            operator_service.create_operator(
                {"name": "Alpha Logistics", "code": "ZZ1", "phone": "1"}
            )

    def test_unknown_payment_method(self, db_session):
        with pytest.raises(ValidationError):
            operator_service.create_operator(
                {"name": "Delta", "code": "DLT", "phone": "1", "payment_methods": ["cheque"]}
            )

    def test_missing_phone(self, db_session):
        with pytest.raises(ValidationError):
            operator_service.create_operator({"name": "Delta", "code": "DLT"})


class TestUpdateOperator:
    def test_code_is_immutable(self, db_session, operator_a):
        with pytest.raises(ValidationError):
            operator_service.update_operator(operator_a.id, {"code": "NEW"})

    def test_payment_methods_deduplicated(self, db_session, operator_a):
        operator = operator_service.update_operator(
            operator_a.id, {"payment_methods": ["UPI", "cash", "UPI"]}
        )
        assert operator.payment_methods == ["UPI", "cash"]

    def test_missing_operator(self, db_session):
        with pytest.raises(NotFoundError):
            operator_service.get_operator(12345)

    def test_search(self, db_session, operator_a, operator_b):
        result = operator_service.search_operators("beta")
        assert result["total_records"] == 1
        assert result["data"][0]["code"] == "BT1"
