# Overview: Status and enumeration values shared by models, services and reports.

from typing import Literal


# -- Operators --

OPERATOR_STATUS_ACTIVE = "active"
OPERATOR_STATUS_INACTIVE = "inactive"
OPERATOR_STATUSES = {OPERATOR_STATUS_ACTIVE, OPERATOR_STATUS_INACTIVE}

PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_UPI = "UPI"
PAYMENT_METHODS = {PAYMENT_METHOD_CASH, PAYMENT_METHOD_UPI}


# -- Branches / users --

ACTIVE = "Active"
INACTIVE = "Inactive"
RECORD_STATUSES = {ACTIVE, INACTIVE}

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"
ROLES = {ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF}


# -- Vehicles --

VEHICLE_AVAILABLE = "Available"
VEHICLE_IN_TRANSIT = "InTransit"
VEHICLE_MAINTENANCE = "Maintenance"
VEHICLE_STATUSES = {VEHICLE_AVAILABLE, VEHICLE_IN_TRANSIT, VEHICLE_MAINTENANCE}


# -- Bookings --

BookingStatus = Literal["Booked", "InTransit", "Arrived", "Delivered", "Cancelled"]

BOOKING_BOOKED = "Booked"
BOOKING_IN_TRANSIT = "InTransit"
BOOKING_ARRIVED = "Arrived"
BOOKING_DELIVERED = "Delivered"
BOOKING_CANCELLED = "Cancelled"
BOOKING_STATUSES = {
    BOOKING_BOOKED,
    BOOKING_IN_TRANSIT,
    BOOKING_ARRIVED,
    BOOKING_DELIVERED,
    BOOKING_CANCELLED,
}
BOOKING_TERMINAL_STATUSES = {BOOKING_DELIVERED, BOOKING_CANCELLED}

LR_TYPE_PAID = "Paid"
LR_TYPE_TO_PAY = "ToPay"
LR_TYPES = {LR_TYPE_PAID, LR_TYPE_TO_PAY}

# Prefix used in booking identifiers
LR_TYPE_CODES = {
    LR_TYPE_PAID: "P",
    LR_TYPE_TO_PAY: "TP",
}

BOOKING_PAYMENT_TYPES = {""} | PAYMENT_METHODS


# -- Cash transfers --

TransferStatus = Literal["Pending", "Approved", "Rejected"]

TRANSFER_PENDING = "Pending"
TRANSFER_APPROVED = "Approved"
TRANSFER_REJECTED = "Rejected"
TRANSFER_STATUSES = {TRANSFER_PENDING, TRANSFER_APPROVED, TRANSFER_REJECTED}

# List filter alias for "already decided"
TRANSFER_FILTER_NON_PENDING = "NonPending"


# -- Ledger --

TRANSACTION_BOOKING = "Booking"
TRANSACTION_TRANSFER = "Transfer"
TRANSACTION_TYPES = {TRANSACTION_BOOKING, TRANSACTION_TRANSFER}
