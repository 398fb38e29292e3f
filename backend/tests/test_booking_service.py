# Overview: Pytest coverage for booking creation, lifecycle and search.

from decimal import Decimal

import pytest

from cargodesk.errors import ConflictError, InvalidStatusError, NotFoundError, ValidationError
from cargodesk.models import Booking, Transaction
from cargodesk.services import booking_service
from cargodesk.services.ledger_service import get_balance

from conftest import BOOKING_DAY, booking_payload


@pytest.fixture
def make_booking(db_session, operator_a, staff_a, branch_a1, branch_a2):
    def _make(**overrides):
        booking = booking_service.create_booking(
            booking_payload(branch_a1, branch_a2, **overrides),
            user_id=staff_a.id,
            operator_id=operator_a.id,
            booking_date=BOOKING_DAY,
        )
        db_session.commit()
        return booking
    return _make


class TestCreateBooking:
    def test_paid_booking_gets_code_and_charges_booker(self, db_session, make_booking, staff_a):
        booking = make_booking()

        assert booking.booking_code == "P-20250609-0001"
        assert booking.status == "Booked"
        assert booking.total_amount_charge == Decimal("150.00")
        assert get_balance(staff_a.id) == Decimal("250.00")

        txn = db_session.query(Transaction).one()
        assert txn.type == "Booking"
        assert txn.booking_id == booking.id

    def test_codes_follow_operator_sequence(self, make_booking):
        first = make_booking()
        second = make_booking(lr_type="ToPay")

        assert first.booking_sequence == 1
        assert second.booking_sequence == 2
        assert second.booking_code == "TP-20250609-0002"

    def test_to_pay_booking_not_charged_at_creation(self, db_session, make_booking, staff_a):
        make_booking(lr_type="ToPay")

        assert get_balance(staff_a.id) == Decimal("100.00")
        assert db_session.query(Transaction).count() == 0

    def test_missing_required_field(self, db_session, operator_a, staff_a, branch_a1, branch_a2):
        payload = booking_payload(branch_a1, branch_a2)
        del payload["receiver_phone"]
        with pytest.raises(ValidationError):
            booking_service.create_booking(payload, user_id=staff_a.id, operator_id=operator_a.id)

    def test_invalid_lr_type(self, db_session, operator_a, staff_a, branch_a1, branch_a2):
        with pytest.raises(ValidationError):
            booking_service.create_booking(
                booking_payload(branch_a1, branch_a2, lr_type="Credit"),
                user_id=staff_a.id,
                operator_id=operator_a.id,
            )

    def test_same_branch_rejected(self, db_session, operator_a, staff_a, branch_a1):
        with pytest.raises(ValidationError):
            booking_service.create_booking(
                booking_payload(branch_a1, branch_a1),
                user_id=staff_a.id,
                operator_id=operator_a.id,
            )

    def test_branch_of_other_operator_rejected(self, db_session, operator_a, staff_a, branch_a1, branch_b1):
        with pytest.raises(ValidationError):
            booking_service.create_booking(
                booking_payload(branch_a1, branch_b1),
                user_id=staff_a.id,
                operator_id=operator_a.id,
            )

    def test_payment_type_must_be_enabled(self, db_session, operator_b, staff_b, branch_b1, branch_b2):
        with pytest.raises(ValidationError):
            booking_service.create_booking(
                booking_payload(branch_b1, branch_b2, payment_type="UPI"),
                user_id=staff_b.id,
                operator_id=operator_b.id,
            )

    def test_blank_payment_type_allowed(self, make_booking):
        booking = make_booking(payment_type="")
        assert booking.payment_type == ""

    def test_inactive_operator(self, db_session, operator_a, staff_a, branch_a1, branch_a2):
        operator_a.status = "inactive"
        db_session.commit()

        with pytest.raises(ValidationError):
            booking_service.create_booking(
                booking_payload(branch_a1, branch_a2),
                user_id=staff_a.id,
                operator_id=operator_a.id,
            )


class TestLifecycle:
    def test_full_lifecycle(self, db_session, make_booking, operator_a, staff_a, staff_a2, vehicle_a):
        booking = make_booking(lr_type="ToPay")

        booking_service.assign_vehicle(booking.id, vehicle_a.id, operator_id=operator_a.id)
        booking_service.load_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        db_session.commit()
        assert booking.status == "InTransit"
        assert booking.dispatch_date is not None

        booking_service.unload_booking(booking.id, operator_id=operator_a.id, user_id=staff_a2.id)
        db_session.commit()
        assert booking.status == "Arrived"
        assert booking.arrival_date is not None

        booking_service.deliver_booking(booking.id, operator_id=operator_a.id, user_id=staff_a2.id)
        db_session.commit()
        assert booking.status == "Delivered"
        assert booking.delivered_by_user_id == staff_a2.id

        # ToPay is collected by whoever delivers
        assert get_balance(staff_a2.id) == Decimal("160.00")
        assert get_balance(staff_a.id) == Decimal("100.00")

    def test_paid_booking_not_charged_again_on_delivery(
        self, db_session, make_booking, operator_a, staff_a, staff_a2, vehicle_a
    ):
        booking = make_booking()
        booking_service.assign_vehicle(booking.id, vehicle_a.id, operator_id=operator_a.id)
        booking_service.load_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        booking_service.unload_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        booking_service.deliver_booking(booking.id, operator_id=operator_a.id, user_id=staff_a2.id)
        db_session.commit()

        assert get_balance(staff_a.id) == Decimal("250.00")
        assert get_balance(staff_a2.id) == Decimal("10.00")
        assert db_session.query(Transaction).count() == 1

    def test_load_requires_vehicle(self, make_booking, operator_a, staff_a):
        booking = make_booking()
        with pytest.raises(ValidationError):
            booking_service.load_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)

    def test_cannot_skip_states(self, make_booking, operator_a, staff_a):
        booking = make_booking()
        with pytest.raises(InvalidStatusError):
            booking_service.deliver_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        with pytest.raises(InvalidStatusError):
            booking_service.unload_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)

    def test_vehicle_under_maintenance(self, db_session, make_booking, operator_a, vehicle_a):
        vehicle_a.status = "Maintenance"
        db_session.commit()
        booking = make_booking()

        with pytest.raises(ValidationError):
            booking_service.assign_vehicle(booking.id, vehicle_a.id, operator_id=operator_a.id)

    def test_cancel_keeps_charge(self, db_session, make_booking, operator_a, staff_a):
        booking = make_booking()
        booking_service.cancel_booking(
            booking.id, operator_id=operator_a.id, user_id=staff_a.id, reason="Sender withdrew"
        )
        db_session.commit()

        assert booking.status == "Cancelled"
        assert booking.cancellation_reason == "Sender withdrew"
        assert get_balance(staff_a.id) == Decimal("250.00")

    def test_cancelled_booking_is_final(self, db_session, make_booking, operator_a, staff_a, vehicle_a):
        booking = make_booking()
        booking_service.cancel_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        db_session.commit()

        with pytest.raises(InvalidStatusError):
            booking_service.cancel_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        with pytest.raises(InvalidStatusError):
            booking_service.assign_vehicle(booking.id, vehicle_a.id, operator_id=operator_a.id)
        with pytest.raises(InvalidStatusError):
            booking_service.update_booking(booking.id, {"sender_name": "X"}, operator_id=operator_a.id)

    def test_transition_table(self):
        booking_service.validate_booking_transition("Arrived", "Cancelled")
        with pytest.raises(InvalidStatusError):
            booking_service.validate_booking_transition("Delivered", "Cancelled")
        with pytest.raises(InvalidStatusError):
            booking_service.validate_booking_transition("Booked", "Lost")


class TestUpdateAndDelete:
    def test_update_details(self, db_session, make_booking, operator_a):
        booking = make_booking()
        booking_service.update_booking(
            booking.id, {"receiver_name": "New Receiver", "quantity": 5}, operator_id=operator_a.id
        )
        db_session.commit()

        assert booking.receiver_name == "New Receiver"
        assert booking.quantity == 5

    def test_charges_are_not_editable(self, make_booking, operator_a):
        booking = make_booking()
        with pytest.raises(ValidationError):
            booking_service.update_booking(booking.id, {"freight_charge": "1"}, operator_id=operator_a.id)

    def test_delete_to_pay_booking(self, db_session, make_booking, operator_a):
        booking = make_booking(lr_type="ToPay")
        booking_id = booking.id
        booking_service.delete_booking(booking_id, operator_id=operator_a.id)
        db_session.commit()

        assert db_session.query(Booking).filter_by(id=booking_id).first() is None

    def test_delete_with_ledger_entries_conflicts(self, make_booking, operator_a):
        booking = make_booking()
        with pytest.raises(ConflictError):
            booking_service.delete_booking(booking.id, operator_id=operator_a.id)

    def test_other_operator_sees_nothing(self, make_booking, operator_b):
        booking = make_booking()
        with pytest.raises(NotFoundError):
            booking_service.get_booking(booking.id, operator_id=operator_b.id)


class TestQueries:
    def test_search_by_code_and_name(self, make_booking, operator_a):
        make_booking(sender_name="Lakshmi Traders")
        make_booking(sender_name="Gopal Stores")

        by_name = booking_service.search_bookings(operator_id=operator_a.id, query="lakshmi")
        assert by_name["total_records"] == 1
        assert by_name["bookings"][0]["sender_name"] == "Lakshmi Traders"

        by_code = booking_service.search_bookings(operator_id=operator_a.id, query="0002")
        assert [b["booking_code"] for b in by_code["bookings"]] == ["P-20250609-0002"]

    def test_search_bad_status(self, operator_a, db_session):
        with pytest.raises(InvalidStatusError):
            booking_service.search_bookings(operator_id=operator_a.id, status="Lost")

    def test_unassigned_and_by_status(self, db_session, make_booking, operator_a, vehicle_a):
        first = make_booking()
        make_booking()
        booking_service.assign_vehicle(first.id, vehicle_a.id, operator_id=operator_a.id)
        db_session.commit()

        unassigned = booking_service.list_unassigned(operator_id=operator_a.id)
        assert unassigned["total_records"] == 1

        booked = booking_service.list_by_status("Booked", operator_id=operator_a.id)
        assert booked["total_records"] == 2
        assert booked["count"] == 2
