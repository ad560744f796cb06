# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Typed storage errors.  The repository converts driver exceptions into these
at its boundary; handlers translate them into protocol status codes.
Anything else escaping the repository is unclassified.
"""


class StorageError(Exception):
    pass


class UserAlreadyExists(StorageError):
    pass


class NotFound(StorageError):
    """Base for every "no such row for this caller" condition."""

    kind = "Item"

    def __init__(self, key: str):
        super().__init__(f"{self.kind} {key} not found")
        self.key = key


class UserNotFound(NotFound):
    kind = "User"


class PasswordNotFound(NotFound):
    kind = "Password"


class BankNotFound(NotFound):
    kind = "Bank"


class TextNotFound(NotFound):
    kind = "Text"


class FileNotFound(NotFound):
    kind = "File"
