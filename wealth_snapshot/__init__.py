"""
Wealth Snapshot

Personal net-worth tracker for a household holding cash, stocks and term
deposits across HKD, AUD and USD. State lives on the device and is mirrored
to a shared remote store under an access code, so every device using the
same code sees the same numbers.

DESIGN PRINCIPLES:
1. One owner of state (StateStore); every change is an explicit mutation
2. Local first: remote failures never block or roll back a change
3. Last writer wins on the whole document
4. Money is Decimal; rounding happens once, at the total
"""

__version__ = "1.0.0"
__author__ = "Wealth Snapshot Team"
