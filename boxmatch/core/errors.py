"""Matchmaking error types.

Every error surfaced to a caller is one of these. Each carries a stable code
that the HTTP layer maps to a status:

- INVALID_ARGUMENT: malformed request (empty query, bad filters, bad dates)
- NOT_FOUND: unknown boxer, or a boxer outside the caller's clubs
- PERMISSION_DENIED: caller is not a member of any club
- RESOURCE_EXHAUSTED: general request rate limit reached
- INTERNAL: unexpected failure in retrieval or the rate-limit store

Intent parsing and explanation generation never raise these; they degrade
to their deterministic fallbacks instead.
"""


class MatchmakingError(Exception):
    """Base matchmaking error.

    Attributes:
        code: Stable error code (e.g., "NOT_FOUND")
        message: Human-readable message safe to return to the caller
    """

    code = "INTERNAL"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")


class InvalidArgumentError(MatchmakingError):
    code = "INVALID_ARGUMENT"


class NotFoundError(MatchmakingError):
    code = "NOT_FOUND"


class PermissionDeniedError(MatchmakingError):
    code = "PERMISSION_DENIED"


class ResourceExhaustedError(MatchmakingError):
    code = "RESOURCE_EXHAUSTED"


class InternalError(MatchmakingError):
    code = "INTERNAL"
