"""
MoneyMate - Ledger Package

The core of a personal finance tracker: transactions, monthly budgets
and savings goals of a user, kept consistent through one derived
savings balance.

DESIGN PRINCIPLES:
1. Balances are derived from the transaction log, never stored
2. Fail early, fail visibly
3. No silent corrections
4. Multi-step changes are all or nothing
5. Every mutation is auditable
6. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MoneyMate Team"
