import math

import structlog
from pydantic import ValidationError

from powcap.errors import CapError, ChallengeExpiredOrMissing, InvalidInput, SolutionInvalid
from powcap.schemas.cap import (
    ChallengeConfig,
    ChallengeData,
    ChallengeResult,
    PuzzleItem,
    PuzzleParams,
    RedeemResult,
)
from powcap.services.crypto_utils import now_ms, random_hex, sha256_hex
from powcap.services.prng import derive
from powcap.services.storage_service import ChallengeStorage, StorageHooks, storage_errors
from powcap.services.token_service import DEFAULT_TOKEN_EXPIRES_MS, issue_token

logger = structlog.get_logger()

CHALLENGE_TOKEN_BYTES = 25


def _resolve_config(config: ChallengeConfig | dict | None) -> ChallengeConfig:
    if config is None:
        return ChallengeConfig()
    if isinstance(config, ChallengeConfig):
        return config
    try:
        return ChallengeConfig.model_validate(config)
    except ValidationError as e:
        raise InvalidInput(f"Invalid challenge config: {e.error_count()} error(s)") from e


async def create_challenge(
    storage: StorageHooks, config: ChallengeConfig | dict | None = None
) -> ChallengeResult:
    """
    Generate a new proof-of-work challenge.

    With ``store=False`` nothing is persisted and no token is returned; the
    caller is then responsible for carrying the challenge itself.
    """
    conf = _resolve_config(config)
    params = PuzzleParams(
        c=conf.challenge_count,
        s=conf.challenge_size,
        d=conf.challenge_difficulty,
    )
    token = random_hex(CHALLENGE_TOKEN_BYTES)
    expires = now_ms() + conf.expires_ms

    if not conf.store:
        return ChallengeResult(challenge=params, expires=expires)

    if storage.challenges is not None:
        with storage_errors("store challenge"):
            await storage.challenges.store(token, ChallengeData(challenge=params, expires=expires))

    logger.info(
        "challenge_created",
        count=params.count,
        size=params.size,
        difficulty=params.difficulty,
    )
    return ChallengeResult(challenge=params, token=token, expires=expires)


def puzzle_at(token: str, index: int, params: PuzzleParams) -> PuzzleItem:
    """Derive puzzle ``index`` (1-based) of the challenge seeded by ``token``."""
    seed = f"{token}{index}"
    return PuzzleItem(
        salt=derive(seed, params.size),
        target=derive(f"{seed}d", params.difficulty),
    )


def build_puzzles(token: str, params: PuzzleParams) -> list[PuzzleItem]:
    return [puzzle_at(token, i, params) for i in range(1, params.count + 1)]


def render_solution(value: int | float) -> str:
    """
    Render a solution the way a browser solver concatenates it onto the salt.

    Floats follow JavaScript's number formatting: integral values below 1e21
    print without a fraction, and exponents are used only outside
    [1e-6, 1e21).
    """
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"

    text = repr(value)
    mantissa, _, exponent = text.partition("e")
    if not exponent:
        return text
    exp = int(exponent)
    if -6 <= exp < 0:
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-exp - 1)}{digits}"
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


def check_solution(puzzle: PuzzleItem, solution: int | float) -> bool:
    return sha256_hex(puzzle.salt + render_solution(solution)).startswith(puzzle.target)


def _validate_body(token: object, solutions: object) -> None:
    if not token or not isinstance(token, str):
        raise InvalidInput()
    if not isinstance(solutions, (list, tuple)):
        raise InvalidInput()
    for s in solutions:
        if isinstance(s, bool) or not isinstance(s, (int, float)):
            raise InvalidInput()


async def _consume_challenge(store: ChallengeStorage | None, token: str) -> ChallengeData | None:
    """Fetch the challenge and remove it, whatever happens next."""
    if store is None:
        return None
    with storage_errors("consume challenge"):
        take = getattr(store, "take", None)
        if take is not None:
            return await take(token)
        data = await store.read(token)
        await store.delete(token)
        return data


async def redeem_challenge(
    storage: StorageHooks,
    token: object,
    solutions: object,
    token_expires_ms: int = DEFAULT_TOKEN_EXPIRES_MS,
) -> RedeemResult:
    """
    Verify solutions for a challenge and, if every puzzle is solved, issue a
    verification token.

    The challenge is deleted before the solutions are checked, so a token can
    be redeemed at most once even when the attempt fails.
    """
    try:
        _validate_body(token, solutions)

        data = await _consume_challenge(storage.challenges, token)
        if data is None or data.expires < now_ms():
            raise ChallengeExpiredOrMissing()

        puzzles = build_puzzles(token, data.challenge)
        solved = all(
            i < len(solutions) and check_solution(puzzle, solutions[i])
            for i, puzzle in enumerate(puzzles)
        )
        if not solved:
            raise SolutionInvalid()

        issued = await issue_token(storage, expires_ms=token_expires_ms)
    except CapError as e:
        logger.info("redeem_failed", reason=e.code)
        return RedeemResult(success=False, message=e.message, error=e.code)

    logger.info("challenge_redeemed", puzzles=data.challenge.c)
    return RedeemResult(success=True, token=issued.token, expires=issued.expires)
