"""
Error taxonomy for the PingUp core.

Services raise these; the API surface turns them into JSON bodies with
the matching HTTP status. Messages are safe to show to end users.
"""


class PingUpError(Exception):
    status = 500
    default_message = "Something went wrong"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(PingUpError):
    status = 401
    default_message = "Unauthorized"


class InvalidArgument(PingUpError):
    status = 400
    default_message = "Invalid request"


class Forbidden(PingUpError):
    status = 403
    default_message = "Not allowed"


class NotFound(PingUpError):
    status = 404
    default_message = "Not found"


# Reserved: duplicate follows and requests are answered as successful Outcomes
class Conflict(PingUpError):
    status = 409
    default_message = "Conflicting request"


class RateLimited(PingUpError):
    status = 429
    default_message = "Too many requests"


class Unavailable(PingUpError):
    status = 503
    default_message = "Service temporarily unavailable"
