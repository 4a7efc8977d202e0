"""Ledger rejections.

Every rejection leaves the portfolio untouched. They subclass ``ValueError`` so
callers that only care about "the order was refused" can catch one type.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for rejected ledger operations."""


class InvalidOrder(LedgerError):
    """Quantity, price or fee is outside the accepted range."""


class InsufficientFunds(LedgerError):
    """The buy would cost more than the available cash."""


class NoSuchHolding(LedgerError):
    """The sell refers to a symbol that is not held."""


class InsufficientQuantity(NoSuchHolding):
    """The sell asks for more units than are held."""
