"""Credit ledger interface and an in-process implementation."""

import logging
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class InsufficientCredits(Exception):
    def __init__(self, user_id, balance, required):
        self.user_id = user_id
        self.balance = balance
        self.required = required
        super().__init__(f"User {user_id} has {balance} credit(s), {required} required")


class CreditLedger(ABC):
    """Usage credits per user. Only the orchestrator deducts."""

    @abstractmethod
    def get_balance(self, user_id) -> int:
        """Current balance for the user (0 for unknown users)."""

    @abstractmethod
    def deduct(self, user_id, amount, description="") -> int:
        """Remove ``amount`` credits and return the new balance.

        Raises InsufficientCredits when the balance is too low.
        """


class InMemoryCreditLedger(CreditLedger):
    """Thread-safe ledger for development, the CLI and tests."""

    def __init__(self, balances=None, default_balance=0):
        self._balances = dict(balances or {})
        self._default = default_balance
        self._lock = threading.Lock()
        self.transactions = []   # (user_id, amount, description)

    def get_balance(self, user_id):
        with self._lock:
            return self._balances.get(user_id, self._default)

    def grant(self, user_id, amount):
        with self._lock:
            self._balances[user_id] = self._balances.get(user_id, self._default) + amount
            return self._balances[user_id]

    def deduct(self, user_id, amount, description=""):
        with self._lock:
            balance = self._balances.get(user_id, self._default)
            if balance < amount:
                raise InsufficientCredits(user_id, balance, amount)
            self._balances[user_id] = balance - amount
            self.transactions.append((user_id, amount, description))
        logger.info("Deducted %d credit(s) from %s (%s)", amount, user_id, description)
        return balance - amount
