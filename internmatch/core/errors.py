"""
Domain errors.

Services raise these; the HTTP layer maps them to a status code and a
JSON body of the form {"error": "<message>", ...details}.
"""

from typing import Any, Dict, List, Optional


class InternMatchError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message}
        body.update(self.details)
        return body


# 400

class ValidationError(InternMatchError):
    status_code = 400
    default_message = "Invalid request"


class InvalidMetadata(ValidationError):
    default_message = "Invalid file metadata"


class TokenExpired(ValidationError):
    default_message = "Invalid or expired upload token"


class ResumeNotEligible(ValidationError):
    default_message = "Resume is not eligible for applications"


class ProfileIncomplete(ValidationError):
    default_message = "Complete your profile before applying"

    def __init__(self, missing_fields: List[str], message: Optional[str] = None):
        super().__init__(message, missing_fields=list(missing_fields))
        self.missing_fields = list(missing_fields)


# 401 / 403 / 404

class Unauthenticated(InternMatchError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(InternMatchError):
    status_code = 403
    default_message = "Not authorized"


class NotOwner(Forbidden):
    default_message = "You do not own this resource"


class NotFound(InternMatchError):
    status_code = 404
    default_message = "Not found"


# 409

class Conflict(InternMatchError):
    status_code = 409
    default_message = "Conflict"


class DuplicateApplication(Conflict):
    default_message = "Already applied to this internship"


class InvalidTransition(Conflict):
    default_message = "Invalid application status transition"


class InternshipClosed(Conflict):
    default_message = "Internship is not accepting applications"


# 429 / 502

class RateLimited(InternMatchError):
    status_code = 429
    default_message = "Too many requests"


class DependencyFailure(InternMatchError):
    status_code = 502
    default_message = "Upstream service unavailable"
