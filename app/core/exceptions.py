"""
Domain errors raised by the certificate workflow.

Every error carries the HTTP status and machine code the API reports, so
services stay free of transport concerns while `app.main` translates them
in one place.
"""
from fastapi import status


class CertificateError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "CERTIFICATE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CertificateError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class InvalidAction(ValidationError):
    code = "INVALID_ACTION"


class MissingRejectionReason(ValidationError):
    code = "MISSING_REJECTION_REASON"


class StateConflictError(CertificateError):
    status_code = status.HTTP_409_CONFLICT
    code = "STATE_CONFLICT"


class AlreadyRejected(StateConflictError):
    code = "ALREADY_REJECTED"


class AlreadyApproved(StateConflictError):
    code = "ALREADY_APPROVED"


class NotFoundError(CertificateError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class RecordNotFound(NotFoundError):
    code = "RECORD_NOT_FOUND"


class PersistenceError(CertificateError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_ERROR"


class PersistenceFailure(PersistenceError):
    code = "PERSISTENCE_FAILURE"
