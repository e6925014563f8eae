"""
Domain errors. Each one knows the HTTP status it is answered with; the
handler in main turns them into ``{"detail": ...}`` responses.
"""

from typing import Optional


class AppError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(AppError):
    status_code = 401
    default_detail = "Please authenticate."


class InvalidToken(Unauthenticated):
    default_detail = "Invalid token"


class InvalidCredentials(Unauthenticated):
    default_detail = "Invalid login credentials"


class ValidationFailed(AppError):
    status_code = 400
    default_detail = "Invalid request"


class MissingField(ValidationFailed):
    default_detail = "All fields are required"


class InvalidEmail(ValidationFailed):
    default_detail = "Invalid email format"


class WeakPassword(ValidationFailed):
    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Password requirements not met:\n\n" + "\n".join(self.problems))


class DuplicateEmail(ValidationFailed):
    default_detail = "Email already registered"


class MissingTitle(ValidationFailed):
    default_detail = "Title is required"


class EmptyContent(ValidationFailed):
    default_detail = "Comment content is required"


class EmptyName(ValidationFailed):
    default_detail = "Name is required"


class InvalidImageFormat(ValidationFailed):
    default_detail = "Invalid image format"


class PayloadTooLarge(ValidationFailed):
    default_detail = "File size should be less than 5MB"


class NotFound(AppError):
    status_code = 404
    default_detail = "Not found"


class Forbidden(AppError):
    status_code = 403
    default_detail = "Not allowed"
