"""
Closed error taxonomy.

Adapters translate backend failures (SQLAlchemy, argon2, filesystem) into
these classes so services and routers never inspect backend-specific
messages or codes.
"""

from __future__ import annotations

from typing import Mapping, Sequence


class CardAppError(Exception):
    """Base class for every error surfaced to the UI."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateUsernameError(CardAppError):
    default_message = "Username already taken"


class DuplicateEmailError(CardAppError):
    default_message = "An account with this email already exists"


class InvalidCredentialsError(CardAppError):
    default_message = "Invalid email or password"


class NotFoundError(CardAppError):
    default_message = "Business card not found"


class AccountNotFoundError(NotFoundError):
    default_message = "Account not found"


class CardNotFoundError(NotFoundError):
    pass


class UploadFailedError(CardAppError):
    default_message = "Failed to upload files"

    def __init__(self, message: str | None = None, failed: Sequence[str] = ()):
        super().__init__(message)
        self.failed = list(failed)


class PersistenceFailedError(CardAppError):
    default_message = "Could not save your changes"


class ValidationFailedError(CardAppError):
    """Form-level validation failure; ``errors`` maps field name to message."""

    default_message = "Please fix the highlighted fields"

    def __init__(self, errors: Mapping[str, str], message: str | None = None):
        self.errors = dict(errors)
        if message is None and len(self.errors) == 1:
            message = next(iter(self.errors.values()))
        super().__init__(message)
