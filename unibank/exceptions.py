"""
Error taxonomy for the record store.

Validation problems raise, missing records are usually reported as
False/None, and persistence failures abort the operation that caused them.
Insufficient funds is not an error at all: withdraw() simply returns False.
"""


class UniBankError(Exception):
    """Base class for all record store errors"""


class InvalidInputError(UniBankError, ValueError):
    """Bad constructor or call arguments (negative balance, blank name, ...)"""


class NotFoundError(UniBankError, LookupError):
    """Unknown customer id, account number or username"""


class StorageError(UniBankError):
    """A record file could not be read or written"""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
