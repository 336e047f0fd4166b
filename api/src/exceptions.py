"""Domain exceptions raised by the authentication service.

Routers translate these into HTTP responses; the service layer never
raises HTTPException itself.
"""


class AuthError(Exception):
    """Base class for authentication failures."""

    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)
        self.message = message


class UserAlreadyExistsError(AuthError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str):
        super().__init__("Email already registered")
        self.email = email


class InvalidCredentialsError(AuthError):
    """Raised on unknown email, wrong password or inactive account."""

    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidTokenError(AuthError):
    """Raised when a JWT fails validation, is revoked, or has the wrong type."""

    def __init__(self, reason: str = "invalid"):
        super().__init__("Invalid authentication token")
        self.reason = reason
