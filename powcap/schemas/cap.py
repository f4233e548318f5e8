from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PuzzleParams(BaseModel):
    """Puzzle parameters, persisted as ``{c, s, d}``."""

    model_config = ConfigDict(frozen=True)

    c: int = Field(..., gt=0, description="Number of puzzles")
    s: int = Field(..., gt=0, description="Salt length in hex characters")
    d: int = Field(..., gt=0, description="Target prefix length in hex characters")

    @property
    def count(self) -> int:
        return self.c

    @property
    def size(self) -> int:
        return self.s

    @property
    def difficulty(self) -> int:
        return self.d


class ChallengeData(BaseModel):
    """What the challenge store keeps per token. Never the puzzles themselves."""

    challenge: PuzzleParams
    expires: int  # epoch milliseconds


class PuzzleItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    salt: str
    target: str


class ChallengeConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    challenge_count: int = Field(50, gt=0, alias="challengeCount")
    challenge_size: int = Field(32, gt=0, alias="challengeSize")
    challenge_difficulty: int = Field(4, gt=0, alias="challengeDifficulty")
    expires_ms: int = Field(600_000, ge=0, alias="expiresMs")
    store: bool = True


class ChallengeResult(BaseModel):
    challenge: PuzzleParams
    token: str | None = None
    expires: int


class RedeemRequest(BaseModel):
    # Loosely typed so shape errors reach the protocol layer as "Invalid body"
    token: Any = None
    solutions: Any = None


class RedeemResult(BaseModel):
    success: bool
    message: str | None = None
    token: str | None = None
    expires: int | None = None
    error: str | None = Field(default=None, exclude=True)


class IssuedToken(BaseModel):
    token: str  # "<id>:<secret>", only returned once
    expires: int


class ValidateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Any = None
    keep_token: bool = Field(False, alias="keepToken")


class ValidateResult(BaseModel):
    success: bool
    message: str | None = Field(default=None, exclude=True)
    error: str | None = Field(default=None, exclude=True)


class CleanupReport(BaseModel):
    challenges_deleted: int = 0
    tokens_deleted: int = 0
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
