"""
Ledger Module
=============

Currency movements for every user.

Exports:
- LedgerService: balance adjustments and the daily login bonus
"""

from .service import LedgerService

__all__ = ["LedgerService"]
