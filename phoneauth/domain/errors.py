class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class InvalidInput(DomainError):
    """Malformed input; rejected before any store is touched."""

    pass


class InvalidPhone(InvalidInput):
    pass


class InvalidCode(InvalidInput):
    pass


class WeakPassword(InvalidInput):
    pass


class CooldownActive(DomainError):
    """A code was sent to this subject too recently."""

    pass


class RateLimited(DomainError):
    """Too many sends for this subject or client IP in the current window."""

    pass


class CodeExpired(DomainError):
    """No pending code or session: never sent, already consumed, or TTL lapsed."""

    pass


class CodeInvalid(DomainError):
    """Wrong code; the attempt counter was incremented."""

    pass


class MaxAttemptsExceeded(DomainError):
    """Too many wrong guesses; the flow has to restart from a new send."""

    pass


class SessionNotFound(DomainError):
    """One-time session is unknown, expired, or already consumed."""

    pass


class PhoneAlreadyRegistered(DomainError):
    """Another identity already owns this phone."""

    pass


class IdentityNotFound(DomainError):
    pass


class Unauthorized(DomainError):
    pass


class InvalidToken(Unauthorized):
    """Bad signature, wrong kind, or an already used/revoked refresh token."""

    pass


class TokenExpired(Unauthorized):
    pass


class InvalidCredentials(Unauthorized):
    pass


class GatewayUnavailable(DomainError):
    """Code delivery failed; nothing was persisted, the client may retry."""

    pass
