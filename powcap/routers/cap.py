import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from powcap.config import settings
from powcap.middleware.rate_limit import limiter
from powcap.schemas.cap import (
    ChallengeConfig,
    ChallengeResult,
    RedeemRequest,
    RedeemResult,
    ValidateRequest,
    ValidateResult,
)
from powcap.services.cap import Cap, get_cap

router = APIRouter()
logger = structlog.get_logger()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def challenge_config() -> ChallengeConfig:
    return ChallengeConfig(
        challenge_count=settings.challenge_count,
        challenge_size=settings.challenge_size,
        challenge_difficulty=settings.challenge_difficulty,
        expires_ms=settings.challenge_expires_ms,
    )


@router.post("/challenge", response_model=ChallengeResult, response_model_exclude_none=True)
@limiter.limit(settings.rate_limit_cap)
async def create_challenge(request: Request, cap: Cap = Depends(get_cap)):
    """
    Request a new puzzle set.

    The client derives the puzzles from ``token`` and ``challenge`` locally.
    """
    try:
        return await cap.create_challenge(challenge_config())
    except Exception:
        logger.error("challenge_create_failed", exc_info=True)
        return _error(500, "Failed to create challenge")


@router.post("/redeem", response_model=RedeemResult, response_model_exclude_none=True)
@limiter.limit(settings.rate_limit_cap)
async def redeem_challenge(request: Request, body: RedeemRequest, cap: Cap = Depends(get_cap)):
    """
    Exchange solutions for a verification token.

    Protocol failures are reported with ``success: false`` and a message, not
    an HTTP error status.
    """
    if not body.token or body.solutions is None:
        return _error(400, "Missing token or solutions")

    try:
        return await cap.redeem_challenge(body.token, body.solutions)
    except Exception:
        logger.error("challenge_redeem_failed", exc_info=True)
        return _error(500, "Failed to redeem challenge")


@router.post("/validate", response_model=ValidateResult)
@limiter.limit(settings.rate_limit_cap)
async def validate_token(request: Request, body: ValidateRequest, cap: Cap = Depends(get_cap)):
    """Check a verification token on behalf of a relying party."""
    try:
        return await cap.validate_token(body.token, keep_token=body.keep_token)
    except Exception:
        logger.error("token_validate_failed", exc_info=True)
        return _error(500, "Failed to validate token")
