class MessagingError(Exception):

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MessagingError):
    status_code = 400


class NotFound(MessagingError):
    status_code = 404


class Forbidden(MessagingError):
    status_code = 403


class Conflict(MessagingError):
    status_code = 409


class InvalidState(MessagingError):
    # edit/delete windows and attachment edits, reported as a bad request
    status_code = 400


class ServiceUnavailable(MessagingError):
    status_code = 503
