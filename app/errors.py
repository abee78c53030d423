# app/errors.py
"""Domain errors raised by the service layer and mapped to HTTP statuses in app.main."""

class ServiceError(Exception):
    status_code = 500

    def __init__(self, message, error=None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_dict(self):
        body = {"message": self.message}
        if self.error:
            body["error"] = self.error
        return body

class ValidationError(ServiceError):
    status_code = 400

class Unauthorized(ServiceError):
    status_code = 401

class Forbidden(ServiceError):
    status_code = 403

class NotFound(ServiceError):
    status_code = 404

class StorageError(Exception):
    """Raised when the file store cannot persist an upload."""
