"""Ledger package."""

from money_planner.ledger.engine import Ledger

__all__ = ["Ledger"]
