"""
Failure taxonomy for the challenge/token protocol.

Services raise these internally. The public protocol operations catch them and
return a result with ``success=False`` so callers only ever pattern-match on
``success`` and ``message``.
"""


class CapError(Exception):
    code = "cap_error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(CapError):
    code = "invalid_input"
    default_message = "Invalid body"


class ChallengeExpiredOrMissing(CapError):
    code = "challenge_expired_or_missing"
    default_message = "Challenge invalid or expired"


class SolutionInvalid(CapError):
    code = "solution_invalid"
    default_message = "Invalid solution"


class TokenMalformed(CapError):
    code = "token_malformed"
    default_message = "Malformed token"


class TokenExpiredOrMissing(CapError):
    code = "token_expired_or_missing"
    default_message = "Token invalid or expired"


class StorageUnavailable(CapError):
    code = "storage_unavailable"
    default_message = "Storage unavailable"
