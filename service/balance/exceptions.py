class BalanceError(Exception):
    """Base error for balance storage"""


class StoreError(BalanceError):
    """Backing key/value store failed to read or write"""
