# Overview: Operator-scoped operational reports over bookings.

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func
from sqlalchemy.orm import aliased

from ..constants import (
    BOOKING_ARRIVED,
    BOOKING_BOOKED,
    BOOKING_CANCELLED,
    BOOKING_IN_TRANSIT,
    BOOKING_TERMINAL_STATUSES,
    LR_TYPE_PAID,
    LR_TYPE_TO_PAY,
)
from ..errors import ValidationError
from ..extensions import db
from ..models import Booking, Branch
from ..time_utils import day_bounds, parse_iso_date, to_iso_date, to_utc_z, today
from ..validation import money, parse_pagination, to_int_id, total_pages
from .branch_service import get_branch

SORT_FIELDS = {
    "booking_date": Booking.booking_date,
    "booking_code": Booking.booking_code,
    "sender_name": Booking.sender_name,
    "receiver_name": Booking.receiver_name,
    "total_amount_charge": Booking.total_amount_charge,
    "created_at": Booking.created_at,
}

SUMMED_FIELDS = (
    "freight_charge",
    "loading_charge",
    "unloading_charge",
    "other_charge",
    "total_amount_charge",
)

OPEN_STATUS_KEYS = {
    BOOKING_BOOKED: "booked",
    BOOKING_IN_TRANSIT: "in_transit",
    BOOKING_ARRIVED: "arrived",
}


def _parse_day(value, field: str = "date") -> date:
    if isinstance(value, date):
        return value
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    return parsed


def _order_by(sort_field: str | None, sort_order: str | None):
    column = SORT_FIELDS.get(sort_field or "booking_date")
    if column is None:
        raise ValidationError(f"sort_field must be one of: {', '.join(sorted(SORT_FIELDS))}")
    if (sort_order or "asc").lower() == "desc":
        return [column.desc(), Booking.id.desc()]
    return [column.asc(), Booking.id.asc()]


def _report_row(b: Booking, status_at) -> dict:
    return {
        "date": to_iso_date(b.booking_date),
        "booking_code": b.booking_code,
        "sender_name": b.sender_name or "",
        "sender_phone": b.sender_phone or "",
        "receiver_name": b.receiver_name or "",
        "receiver_phone": b.receiver_phone or "",
        "from_branch": b.from_branch.name if b.from_branch else "",
        "to_branch": b.to_branch.name if b.to_branch else "",
        "vehicle_number": b.assigned_vehicle.vehicle_number if b.assigned_vehicle else "",
        "lr_type": b.lr_type,
        "quantity": b.quantity or 0,
        "freight_charge": money(b.freight_charge),
        "loading_charge": money(b.loading_charge),
        "unloading_charge": money(b.unloading_charge),
        "other_charge": money(b.other_charge),
        "total_amount_charge": money(b.total_amount_charge),
        "status": b.status,
        "status_date": to_utc_z(status_at) if status_at else None,
    }


def _totals_row(query, label_field: str = "lr_type") -> dict:
    sums = query.with_entities(
        func.coalesce(func.sum(Booking.quantity), 0),
        *(func.coalesce(func.sum(getattr(Booking, f)), 0) for f in SUMMED_FIELDS),
    ).order_by(None).one()
    row = {label_field: "TOTAL", "quantity": int(sums[0] or 0)}
    for field, value in zip(SUMMED_FIELDS, sums[1:]):
        row[field] = money(Decimal(value or 0))
    return row


def _paged_report(
    query, *, on: date, page, limit, sort_field, sort_order, row, total_label: str = "lr_type",
) -> dict:
    """
    Paginate a booking query. The TOTAL row covers every matching booking
    and is only attached to the last page.
    """
    page, limit = parse_pagination(page, limit)
    total = query.count()
    pages = total_pages(total, limit)

    rows = (
        query.order_by(*_order_by(sort_field, sort_order))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    result = {
        "date": to_iso_date(on),
        "sort_field": sort_field or "booking_date",
        "sort_order": sort_order or "asc",
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": pages,
        "report": [row(b) for b in rows],
    }
    if total and page == pages:
        result["totals_row"] = _totals_row(query, total_label)
    return result


def booking_report(
    *,
    operator_id: int,
    on,
    page=1,
    limit=10,
    sort_field: str | None = None,
    sort_order: str | None = None,
) -> dict:
    """Non-cancelled bookings booked on the given day."""
    day = _parse_day(on)
    query = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.booking_date == day,
        Booking.status != BOOKING_CANCELLED,
    )
    return _paged_report(
        query, on=day, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
        row=lambda b: _report_row(b, b.updated_at),
    )


def _event_report(column, *, operator_id: int, on, page, limit, sort_field, sort_order) -> dict:
    day = _parse_day(on)
    start, end = day_bounds(day)
    query = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        column >= start,
        column <= end,
    )
    return _paged_report(
        query, on=day, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
        row=lambda b: _report_row(b, getattr(b, column.key)),
    )


def delivery_report(*, operator_id: int, on, page=1, limit=10, sort_field=None, sort_order=None) -> dict:
    """Bookings delivered on the given day."""
    return _event_report(
        Booking.delivered_at, operator_id=operator_id, on=on, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
    )


def loading_report(*, operator_id: int, on, page=1, limit=10, sort_field=None, sort_order=None) -> dict:
    """Bookings loaded onto a vehicle on the given day."""
    return _event_report(
        Booking.loaded_at, operator_id=operator_id, on=on, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
    )


def unloading_report(*, operator_id: int, on, page=1, limit=10, sort_field=None, sort_order=None) -> dict:
    return _event_report(
        Booking.unloaded_at, operator_id=operator_id, on=on, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
    )


def revenue_report(*, operator_id: int, start, end) -> dict:
    """Per booking day revenue of non-cancelled bookings, split by LR type."""
    start_day = _parse_day(start, "start")
    end_day = _parse_day(end, "end")
    if end_day < start_day:
        raise ValidationError("end must not be before start")

    paid = func.sum(case((Booking.lr_type == LR_TYPE_PAID, Booking.total_amount_charge), else_=0))
    to_pay = func.sum(case((Booking.lr_type == LR_TYPE_TO_PAY, Booking.total_amount_charge), else_=0))

    rows = db.session.query(
        Booking.booking_date.label("booking_date"),
        func.count(Booking.id).label("booking_count"),
        func.sum(Booking.freight_charge).label("freight"),
        paid.label("paid"),
        to_pay.label("to_pay"),
        func.sum(Booking.total_amount_charge).label("total"),
    ).filter(
        Booking.operator_id == operator_id,
        Booking.status != BOOKING_CANCELLED,
        Booking.booking_date >= start_day,
        Booking.booking_date <= end_day,
    ).group_by(Booking.booking_date).order_by(Booking.booking_date.asc()).all()

    report = []
    totals = {"booking_count": 0}
    totals.update({key: Decimal("0") for key in ("freight", "paid", "to_pay", "total")})
    for row in rows:
        entry = {
            "date": to_iso_date(row.booking_date),
            "booking_count": int(row.booking_count or 0),
            "freight_charge": money(Decimal(row.freight or 0)),
            "paid_revenue": money(Decimal(row.paid or 0)),
            "to_pay_revenue": money(Decimal(row.to_pay or 0)),
            "total_revenue": money(Decimal(row.total or 0)),
        }
        report.append(entry)
        totals["booking_count"] += entry["booking_count"]
        for key in ("freight", "paid", "to_pay", "total"):
            totals[key] += Decimal(getattr(row, key) or 0)

    return {
        "start": to_iso_date(start_day),
        "end": to_iso_date(end_day),
        "report": report,
        "totals_row": {
            "date": "TOTAL",
            "booking_count": totals["booking_count"],
            "freight_charge": money(totals["freight"]),
            "paid_revenue": money(totals["paid"]),
            "to_pay_revenue": money(totals["to_pay"]),
            "total_revenue": money(totals["total"]),
        },
    }


# -- Status and consignment lists --

def _charge_columns(b: Booking) -> dict:
    return {
        "quantity": b.quantity or 0,
        "freight_charge": money(b.freight_charge),
        "loading_charge": money(b.loading_charge),
        "unloading_charge": money(b.unloading_charge),
        "other_charge": money(b.other_charge),
        "total_amount_charge": money(b.total_amount_charge),
    }


def _status_row(b: Booking) -> dict:
    row = {
        "booking_code": b.booking_code,
        "from_branch": b.from_branch.name if b.from_branch else "",
        "to_branch": b.to_branch.name if b.to_branch else "",
        "lr_type": b.lr_type,
        "status": b.status,
        "vehicle_number": b.assigned_vehicle.vehicle_number if b.assigned_vehicle else "",
        "booked_at": to_utc_z(b.created_at),
        "unloaded_at": to_utc_z(b.unloaded_at),
        "delivered_at": to_utc_z(b.delivered_at),
    }
    row.update(_charge_columns(b))
    return row


def status_report(*, operator_id: int, on, page=1, limit=10, sort_field=None, sort_order=None) -> dict:
    """
    Where each non-cancelled booking of the day stands: current status,
    vehicle, and when it was booked, unloaded and delivered.
    """
    day = _parse_day(on)
    query = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.booking_date == day,
        Booking.status != BOOKING_CANCELLED,
    )
    return _paged_report(
        query, on=day, page=page, limit=limit,
        sort_field=sort_field or "booking_code", sort_order=sort_order,
        row=_status_row,
    )


def _consignment_row(b: Booking) -> dict:
    row = {
        "booking_date": to_iso_date(b.booking_date),
        "loaded_at": to_utc_z(b.loaded_at),
        "booking_code": b.booking_code,
        "from_branch": b.from_branch.name if b.from_branch else "",
        "to_branch": b.to_branch.name if b.to_branch else "",
        "vehicle_number": b.assigned_vehicle.vehicle_number if b.assigned_vehicle else "",
    }
    row.update(_charge_columns(b))
    return row


def _consignment_list(branch_column, *, operator_id, on, branch_id, page, limit, sort_field, sort_order) -> dict:
    day = _parse_day(on)
    query = db.session.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.booking_date == day,
        Booking.status != BOOKING_CANCELLED,
    )
    if branch_id is not None:
        branch_id = to_int_id(branch_id, "branch_id")
        get_branch(branch_id, operator_id=operator_id)
        query = query.filter(branch_column == branch_id)

    result = _paged_report(
        query, on=day, page=page, limit=limit,
        sort_field=sort_field, sort_order=sort_order,
        row=_consignment_row, total_label="vehicle_number",
    )
    result["branch_id"] = branch_id
    return result


def incoming_consignments(
    *, operator_id: int, on, branch_id=None, page=1, limit=10, sort_field=None, sort_order=None,
) -> dict:
    """Incoming goods consignment list: the day's bookings headed to branch_id."""
    return _consignment_list(
        Booking.to_branch_id, operator_id=operator_id, on=on, branch_id=branch_id,
        page=page, limit=limit, sort_field=sort_field, sort_order=sort_order,
    )


def outgoing_consignments(
    *, operator_id: int, on, branch_id=None, page=1, limit=10, sort_field=None, sort_order=None,
) -> dict:
    """Outgoing goods consignment list: the day's bookings leaving branch_id."""
    return _consignment_list(
        Booking.from_branch_id, operator_id=operator_id, on=on, branch_id=branch_id,
        page=page, limit=limit, sort_field=sort_field, sort_order=sort_order,
    )


# -- Branch report --

def branch_report(*, operator_id: int, on, sort_order: str | None = None) -> dict:
    """
    The day's non-cancelled bookings grouped by origin branch.

    Rows are ordered by branch name then booking code; each branch gets a
    subtotal in "branches" and the whole day a TOTAL row.
    """
    day = _parse_day(on)
    descending = (sort_order or "asc").lower() == "desc"

    origin = aliased(Branch)
    query = (
        db.session.query(Booking)
        .join(origin, Booking.from_branch_id == origin.id)
        .filter(
            Booking.operator_id == operator_id,
            Booking.booking_date == day,
            Booking.status != BOOKING_CANCELLED,
        )
    )
    ordering = [origin.name, Booking.booking_code]
    rows = query.order_by(*(col.desc() if descending else col.asc() for col in ordering)).all()

    report = []
    branches: dict[str, dict] = {}
    for b in rows:
        branch_name = b.from_branch.name if b.from_branch else ""
        row = {
            "branch_name": branch_name,
            "booking_date": to_iso_date(b.booking_date),
            "booking_code": b.booking_code,
            "lr_type": b.lr_type,
            "status": b.status,
            "from_branch": branch_name,
            "to_branch": b.to_branch.name if b.to_branch else "",
            "payment_type": b.payment_type or "",
        }
        row.update(_charge_columns(b))
        report.append(row)

        subtotal = branches.setdefault(
            branch_name,
            {"branch_name": branch_name, "booking_count": 0, "quantity": 0,
             **{field: Decimal("0") for field in SUMMED_FIELDS}},
        )
        subtotal["booking_count"] += 1
        subtotal["quantity"] += b.quantity or 0
        for field in SUMMED_FIELDS:
            subtotal[field] += Decimal(getattr(b, field) or 0)

    summaries = []
    for subtotal in branches.values():
        summaries.append({
            key: money(value) if key in SUMMED_FIELDS else value
            for key, value in subtotal.items()
        })

    return {
        "date": to_iso_date(day),
        "sort_order": "desc" if descending else "asc",
        "report": report,
        "branches": summaries,
        "totals_row": _totals_row(query),
    }


# -- Dashboard aggregates --

LR_TYPE_LABELS = ((LR_TYPE_TO_PAY, "To Pay"), (LR_TYPE_PAID, "Paid"))


def bookings_by_lr_type(*, operator_id: int, on=None) -> list[dict]:
    """Count of the day's bookings per LR type, both types always present."""
    day = _parse_day(on) if on else today()
    counts = dict(
        db.session.query(Booking.lr_type, func.count(Booking.id))
        .filter(Booking.operator_id == operator_id, Booking.booking_date == day)
        .group_by(Booking.lr_type)
        .all()
    )
    return [{"label": label, "value": int(counts.get(lr_type, 0))} for lr_type, label in LR_TYPE_LABELS]


def bookings_by_branch(*, operator_id: int, on=None) -> list[dict]:
    """The day's bookings per origin branch, split into to_pay and paid counts."""
    day = _parse_day(on) if on else today()
    rows = (
        db.session.query(Branch.name, Booking.lr_type, func.count(Booking.id))
        .join(Branch, Booking.from_branch_id == Branch.id)
        .filter(Booking.operator_id == operator_id, Booking.booking_date == day)
        .group_by(Branch.name, Booking.lr_type)
        .order_by(Branch.name)
        .all()
    )
    data: dict[str, dict] = {}
    for branch_name, lr_type, count in rows:
        entry = data.setdefault(branch_name, {"branch_name": branch_name, "to_pay": 0, "paid": 0})
        entry["to_pay" if lr_type == LR_TYPE_TO_PAY else "paid"] = int(count)
    return list(data.values())


def _month_label(year: int, month: int) -> str:
    return f"{calendar.month_abbr[month]} {year}"


def six_month_bookings(*, operator_id: int, on=None, month: str | None = None) -> list[dict]:
    """
    Monthly booking counts for the month of `on` and the five before it,
    oldest first. month ("Jun 2025", case-insensitive) narrows the result
    to that bucket.
    """
    end_day = _parse_day(on) if on else today()
    buckets = []
    year, mon = end_day.year, end_day.month
    for _ in range(6):
        buckets.append((year, mon))
        year, mon = (year - 1, 12) if mon == 1 else (year, mon - 1)
    buckets.reverse()
    start_day = date(buckets[0][0], buckets[0][1], 1)

    data = {key: {"month": _month_label(*key), "to_pay": 0, "paid": 0} for key in buckets}
    rows = (
        db.session.query(Booking.booking_date, Booking.lr_type, func.count(Booking.id))
        .filter(
            Booking.operator_id == operator_id,
            Booking.booking_date >= start_day,
            Booking.booking_date <= end_day,
        )
        .group_by(Booking.booking_date, Booking.lr_type)
        .all()
    )
    for booking_date, lr_type, count in rows:
        entry = data[(booking_date.year, booking_date.month)]
        entry["to_pay" if lr_type == LR_TYPE_TO_PAY else "paid"] += int(count)

    result = [data[key] for key in buckets]
    if month:
        result = [entry for entry in result if entry["month"].lower() == month.strip().lower()]
    return result


def pending_by_branch(*, operator_id: int) -> list[dict]:
    """Open (not delivered, not cancelled) bookings per origin branch, split by status."""
    rows = (
        db.session.query(Branch.name, Booking.status, func.count(Booking.id))
        .join(Branch, Booking.from_branch_id == Branch.id)
        .filter(
            Booking.operator_id == operator_id,
            Booking.status.notin_(sorted(BOOKING_TERMINAL_STATUSES)),
        )
        .group_by(Branch.name, Booking.status)
        .order_by(Branch.name)
        .all()
    )
    data: dict[str, dict] = {}
    for branch_name, status, count in rows:
        entry = data.setdefault(
            branch_name,
            {"branch_name": branch_name, "booked": 0, "in_transit": 0, "arrived": 0, "pending": 0},
        )
        entry[OPEN_STATUS_KEYS[status]] = int(count)
        entry["pending"] += int(count)
    return list(data.values())
