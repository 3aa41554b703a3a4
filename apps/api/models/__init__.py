"""Models package."""

from .user_credits import UserCredits
from .credit_transaction import CreditTransaction
