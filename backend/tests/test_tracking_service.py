# Overview: Pytest coverage for shipment tracking by booking code and phone.

import pytest

from cargodesk.errors import NotFoundError, ValidationError
from cargodesk.services import booking_service, tracking_service

from conftest import BOOKING_DAY, booking_payload


@pytest.fixture
def booking(db_session, operator_a, staff_a, branch_a1, branch_a2):
    created = booking_service.create_booking(
        booking_payload(branch_a1, branch_a2, receiver_name="Lakshmi"),
        user_id=staff_a.id,
        operator_id=operator_a.id,
        booking_date=BOOKING_DAY,
    )
    db_session.commit()
    return created


class TestTrackBooking:
    def test_fresh_booking_has_one_event(self, booking, operator_a):
        result = tracking_service.track_booking(booking.booking_code, operator_id=operator_a.id)

        assert result["booking_code"] == booking.booking_code
        assert result["booking_date"] == "2025-06-09"
        assert result["status"] == "Booked"
        assert result["total_amount_charge"] == 150.0
        assert result["receiver_name"] == "Lakshmi"
        assert [event["event"] for event in result["tracking"]] == ["Booked"]
        assert result["tracking"][0]["info"] == "booked by Ravi Staff at Hyderabad"

    def test_timeline_follows_the_lifecycle(self, db_session, booking, operator_a, staff_a, admin_a, vehicle_a):
        booking_service.assign_vehicle(booking.id, vehicle_a.id, operator_id=operator_a.id)
        booking_service.load_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        booking_service.unload_booking(booking.id, operator_id=operator_a.id, user_id=admin_a.id)
        booking_service.deliver_booking(booking.id, operator_id=operator_a.id, user_id=admin_a.id)
        db_session.commit()

        result = tracking_service.track_booking(booking.booking_code, operator_id=operator_a.id)

        events = {event["event"]: event for event in result["tracking"]}
        assert list(events) == ["Booked", "Loaded", "Unloaded", "Delivered"]
        assert events["Loaded"]["info"] == "loaded by Ravi Staff at Hyderabad to vehicle TS09AB1234"
        assert events["Delivered"]["info"] == "delivered by Asha Admin at Bengaluru"
        assert events["Delivered"]["at"].endswith("Z")

    def test_cancelled_booking(self, db_session, booking, operator_a, staff_a):
        booking_service.cancel_booking(booking.id, operator_id=operator_a.id, user_id=staff_a.id)
        db_session.commit()

        result = tracking_service.track_booking(booking.booking_code, operator_id=operator_a.id)
        last = result["tracking"][-1]
        assert last["event"] == "Cancelled"
        assert last["info"] == "cancelled by Ravi Staff"
        assert result["status"] == "Cancelled"

    def test_unknown_code(self, booking, operator_a):
        with pytest.raises(NotFoundError):
            tracking_service.track_booking("P-20250609-9999", operator_id=operator_a.id)

    def test_other_operator_cannot_track(self, booking, operator_b):
        with pytest.raises(NotFoundError):
            tracking_service.track_booking(booking.booking_code, operator_id=operator_b.id)

    def test_blank_code(self, operator_a, db_session):
        with pytest.raises(ValidationError):
            tracking_service.track_booking("  ", operator_id=operator_a.id)


class TestBookingsByPhone:
    def test_matches_sender_or_receiver_newest_first(
        self, db_session, booking, operator_a, staff_a, branch_a1, branch_a2
    ):
        later = booking_service.create_booking(
            booking_payload(branch_a2, branch_a1, sender_phone="9300000002", receiver_phone="9300000077"),
            user_id=staff_a.id,
            operator_id=operator_a.id,
            booking_date=BOOKING_DAY,
        )
        db_session.commit()

        # 9300000002 is the receiver of the first booking and the sender of the second
        rows = tracking_service.bookings_by_phone("9300000002", operator_id=operator_a.id)
        assert [row["booking_code"] for row in rows] == [later.booking_code, booking.booking_code]

        rows = tracking_service.bookings_by_phone("9300000077", operator_id=operator_a.id)
        assert [row["booking_code"] for row in rows] == [later.booking_code]
        assert rows[0]["status"] == "Booked"

    def test_scoped_to_operator(self, booking, operator_b):
        assert tracking_service.bookings_by_phone("9300000001", operator_id=operator_b.id) == []

    def test_phone_required(self, operator_a, db_session):
        with pytest.raises(ValidationError):
            tracking_service.bookings_by_phone("", operator_id=operator_a.id)
