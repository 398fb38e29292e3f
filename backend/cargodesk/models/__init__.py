from .tenancy import Operator, Branch
from .fleet import Vehicle
from .auth import User, SessionToken
from .bookings import Booking
from .ledger import CashTransfer, Transaction

__all__ = [
    'Operator', 'Branch',
    'Vehicle',
    'User', 'SessionToken',
    'Booking',
    'CashTransfer', 'Transaction',
]
