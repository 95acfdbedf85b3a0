"""
recordgate_core.errors
----------------------
Error taxonomy. Every failure aborts the whole operation; the ledger rolls
back and re-raises, leaving retries to the caller.

- AuthorizationError: caller lacks the privilege or a valid credential
- StateError: the referenced entity does or does not exist as required
- ValidationError: parameters are rejected before any state is touched
"""


class RecordGateError(Exception):
    code = "RecordGateError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class AuthorizationError(RecordGateError):
    code = "AuthorizationError"


class StateError(RecordGateError):
    code = "StateError"


class ValidationError(RecordGateError):
    code = "ValidationError"


class Unauthorized(AuthorizationError):
    code = "Unauthorized"


class NotOwner(AuthorizationError):
    code = "NotOwner"


class BadSignature(AuthorizationError):
    code = "BadSignature"


class NotFound(StateError):
    code = "NotFound"


class DuplicateId(StateError):
    code = "DuplicateId"


class AlreadyIssued(StateError):
    code = "AlreadyIssued"


class ReplayDetected(StateError):
    code = "ReplayDetected"


class InvalidExpiry(ValidationError):
    code = "InvalidExpiry"


class InvalidAddress(ValidationError):
    code = "InvalidAddress"


class InvalidPayload(ValidationError):
    code = "InvalidPayload"


class UnknownOperation(ValidationError):
    code = "UnknownOperation"


class InvalidRecordId(ValidationError):
    code = "InvalidRecordId"
