"""
Service Exceptions
Typed failures raised by the seminar services and rendered by the API layer
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for recoverable, request-scoped failures"""

    status_code = 400
    code = "service_error"

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code, **self.extra}


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        super().__init__(message, resource=resource, resource_id=resource_id)


class InvalidStateTransition(ServiceError):
    code = "invalid_state_transition"

    def __init__(self, action: str, current_status: str, resource: str = "Makeup request"):
        super().__init__(
            f"Cannot {action} {resource.lower()} with status: {current_status}",
            action=action,
            current_status=current_status,
        )
        self.action = action
        self.current_status = current_status


class DuplicateError(ServiceError):
    code = "duplicate"


class DuplicateRequest(DuplicateError):
    code = "duplicate_request"

    def __init__(self, existing_request_id: str, existing_status: str):
        super().__init__(
            f'A makeup request with status "{existing_status}" is already outstanding for this registration',
            existing_request_id=existing_request_id,
        )
        self.existing_request_id = existing_request_id


class DuplicateAttendance(DuplicateError):
    code = "duplicate_attendance"

    def __init__(self, registration_id: str, session_id: str):
        super().__init__(
            "Attendance is already recorded for this session",
            registration_id=registration_id,
            session_id=session_id,
        )


class AlreadyRegistered(DuplicateError):
    code = "already_registered"

    def __init__(self, registration_id: str, status: str):
        super().__init__(
            "User is already registered for this seminar",
            registration_id=registration_id,
            status=status,
        )
        self.registration_id = registration_id


class DuplicateSession(DuplicateError):
    code = "duplicate_session"


class PreconditionFailed(ServiceError):
    code = "precondition_failed"


class HasDependentAttendance(PreconditionFailed):
    code = "has_dependent_attendance"

    def __init__(self, session_id: str, attendance_count: int):
        super().__init__(
            f"Cannot delete session with attendance records ({attendance_count} recorded)",
            session_id=session_id,
            attendance_count=attendance_count,
        )


class HasDependentMakeupRequests(PreconditionFailed):
    code = "has_dependent_makeup_requests"

    def __init__(self, session_id: str, request_count: int):
        super().__init__(
            f"Cannot delete session referenced by makeup requests ({request_count} found)",
            session_id=session_id,
            request_count=request_count,
        )


class ValidationError(ServiceError):
    code = "validation_error"
