"""
Excepciones de dominio de VoterDesk.

Los endpoints lanzan estas excepciones y los handlers registrados en
main.py las convierten en respuestas JSON {"code", "message", "details"}.
"""

from enum import Enum
from typing import Optional, Any, Dict


class VoterDeskError(Exception):
    """Base exception for all VoterDesk errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationFailed(VoterDeskError):
    """One or more fields failed validation"""

    status_code = 422

    def __init__(self, errors: Dict[str, str], codes: Optional[Dict[str, str]] = None):
        self.errors = errors
        super().__init__(
            "Validation failed",
            code="VALIDATION_FAILED",
            details={"errors": errors, "codes": codes or {}},
        )


class AuthorizationDenied(VoterDeskError):
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class NotFound(VoterDeskError):
    status_code = 404

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} not found", code="NOT_FOUND", details={"entity": entity, "id": key})


class Conflict(VoterDeskError):
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class StoreErrorKind(str, Enum):
    MISSING_TABLE = "missing_table"
    MISSING_COLUMN = "missing_column"
    PERMISSION_DENIED = "permission_denied"
    CONSTRAINT = "constraint"
    UNAVAILABLE = "unavailable"


_STORE_STATUS = {
    StoreErrorKind.MISSING_TABLE: 503,
    StoreErrorKind.MISSING_COLUMN: 503,
    StoreErrorKind.PERMISSION_DENIED: 403,
    StoreErrorKind.CONSTRAINT: 409,
    StoreErrorKind.UNAVAILABLE: 503,
}


class StoreError(VoterDeskError):
    """The record store rejected or could not serve an operation"""

    def __init__(self, kind: StoreErrorKind, message: str, remediation: Optional[str] = None):
        self.kind = kind
        self.remediation = remediation
        self.status_code = _STORE_STATUS[kind]
        super().__init__(
            message,
            code="STORE_" + kind.name,
            details={"kind": kind.value, "remediation": remediation},
        )
