from .user import User
from .account import Account
from .transaction import Transaction
from .exchange_rate import ExchangeRate
from .holding import Holding
from .goal import Goal

__all__ = ["User", "Account", "Transaction", "ExchangeRate", "Holding", "Goal"]
