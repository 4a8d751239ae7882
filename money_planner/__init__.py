"""
Money Planner - Source Package

A personal finance tracker: income and expense recording, running totals,
savings goal and budget tracking, with save/export/import of the full state.

DESIGN PRINCIPLES:
1. The ledger is the only thing that mutates financial state
2. Every operation fully applies or fully rejects
3. Validation failures are returned, never raised across the ledger
4. Persistence is pluggable and never corrupts in-memory state
5. Every step is auditable
"""

__version__ = "1.0.0"
__author__ = "Money Planner Team"
