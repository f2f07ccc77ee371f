from __future__ import annotations


class VotingError(Exception):
    status_code = 500


class ValidationError(VotingError, ValueError):
    """A required field is missing, empty or out of range."""

    status_code = 400


class DuplicateVote(ValidationError):
    def __init__(self, message: str = "You have already voted for this question") -> None:
        super().__init__(message)


class DuplicateModel(ValidationError):
    def __init__(self, message: str = "Model name already exists for this event") -> None:
        super().__init__(message)


class AuthFailure(VotingError):
    status_code = 403


class MissingCredential(AuthFailure):
    status_code = 401

    def __init__(self, message: str = "Admin credential is required") -> None:
        super().__init__(message)


class InvalidCredential(AuthFailure):
    status_code = 403

    def __init__(self, message: str = "Admin credential is invalid or expired") -> None:
        super().__init__(message)


class InvalidLogin(AuthFailure):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class StorageError(VotingError):
    """Underlying database read or write failed; message is the driver's."""

    status_code = 500
