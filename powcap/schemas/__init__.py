from powcap.schemas.cap import (
    ChallengeConfig,
    ChallengeData,
    ChallengeResult,
    CleanupReport,
    IssuedToken,
    PuzzleItem,
    PuzzleParams,
    RedeemRequest,
    RedeemResult,
    ValidateRequest,
    ValidateResult,
)

__all__ = [
    "ChallengeConfig",
    "ChallengeData",
    "ChallengeResult",
    "CleanupReport",
    "IssuedToken",
    "PuzzleItem",
    "PuzzleParams",
    "RedeemRequest",
    "RedeemResult",
    "ValidateRequest",
    "ValidateResult",
]
