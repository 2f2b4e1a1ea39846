"""
Bank Ledger

Accounts and the deposit, withdraw and transfer transactions applied to them.
Amounts are exact integer minor units; balance mutations are serialized per
account and committed as a single storage unit.
"""

__version__ = "1.0.0"
