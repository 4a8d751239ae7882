"""Input validation package."""

from money_planner.validation.validator import EntryValidator, parse_amount

__all__ = ["EntryValidator", "parse_amount"]
