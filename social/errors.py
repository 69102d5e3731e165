"""
Error taxonomy for the LinkWork API.

Every failure a handler wants the client to see is raised as an ApiError
subclass. ApiErrorMiddleware turns it into a JSON body of the form
{"message": ..., "error": <kind>} with the matching HTTP status.
"""


class ApiError(Exception):
    status = 500
    kind = "unexpected"
    default_message = "Server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {"message": self.message, "error": self.kind}


class InvalidArgument(ApiError):
    status = 400
    kind = "invalid_argument"
    default_message = "Invalid request"


class Unauthorized(ApiError):
    status = 401
    kind = "unauthorized"
    default_message = "Authentication required"


class Forbidden(ApiError):
    status = 403
    kind = "forbidden"
    default_message = "Unauthorized"


class NotFound(ApiError):
    status = 404
    kind = "not_found"
    default_message = "Not found"


class StorageError(ApiError):
    kind = "storage_error"
    default_message = "File storage error"


class Unexpected(ApiError):
    pass
