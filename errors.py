class HubError(Exception):
    """Base class for errors surfaced to the user of an action."""
    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(HubError):
    status_code = 400
    default_detail = "Invalid input"


class MissingField(ValidationError):
    default_detail = "Fill all fields!"


class EmptyText(ValidationError):
    default_detail = "Write something!"


class UnknownHobby(ValidationError):
    default_detail = "Unknown hobby"


class PermissionDenied(HubError):
    status_code = 403
    default_detail = "Not allowed!"


class GuestForbidden(PermissionDenied):
    default_detail = "Guests cannot do that. Register or login first."


class RoleForbidden(PermissionDenied):
    default_detail = "Your role does not allow this action"


class Forbidden(PermissionDenied):
    pass


class NotFoundError(HubError):
    status_code = 404
    default_detail = "Not found"


class NotFound(NotFoundError):
    pass


class ConflictError(HubError):
    status_code = 409
    default_detail = "Conflict"


class DuplicateEmail(ConflictError):
    default_detail = "Email already registered!"


class AuthError(HubError):
    status_code = 401
    default_detail = "Authentication failed"


class InvalidCredentials(AuthError):
    default_detail = "Invalid login!"


class Banned(AuthError):
    default_detail = "This account is banned by Admin."
