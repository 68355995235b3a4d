from datetime import datetime


class DomainError(Exception):
    """Business-rule violation raised by the engines; routers map `code` to a transport status."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class PatientNotFoundError(DomainError):
    code = "PATIENT_NOT_FOUND"


class InvalidPinError(DomainError):
    code = "INVALID_PIN"


class PatientPinBlockedError(DomainError):
    code = "PATIENT_PIN_BLOCKED"

    def __init__(self, blocked_until: datetime | None = None):
        super().__init__()
        self.blocked_until = blocked_until


class AppointmentNotFoundError(DomainError):
    code = "APPOINTMENT_NOT_FOUND"


class AppointmentConflictError(DomainError):
    code = "APPOINTMENT_CONFLICT"


class AlertNotFoundError(DomainError):
    code = "ALERT_NOT_FOUND"


class ProfessionalNotFoundError(DomainError):
    code = "PROFESSIONAL_NOT_FOUND"
