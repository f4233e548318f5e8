#!/usr/bin/env python3
"""
Smoke test for powcap deployments.

A deploy guardrail: fast, with actionable failures (step name, HTTP status,
body preview).

Flow (default):
1. Health check
2. Request a challenge (POST /cap/challenge)
3. Solve every puzzle locally
4. Redeem (POST /cap/redeem)
5. Replay the redemption and expect rejection
6. Validate the verification token (POST /cap/validate), then expect reuse to fail

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import hashlib
import json
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from powcap.services.prng import derive

DEFAULT_TIMEOUT_SECONDS = 30.0
HEALTH_RETRY_SLEEP_SECONDS = 2
BODY_PREVIEW_CHARS = 200


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body[:BODY_PREVIEW_CHARS]}")
        self.status_code = status_code
        self.body = body


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def post_json(self, path: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        body = json.dumps(data or {}).encode()
        request = Request(
            f"{self.base_url}{path}",
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        return self._send(request)

    def get_json(self, path: str) -> dict[str, Any]:
        return self._send(Request(f"{self.base_url}{path}", method="GET"))

    def _send(self, request: Request) -> dict[str, Any]:
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                return json.loads(response.read().decode())
        except HTTPError as e:
            raise ApiError(e.code, e.read().decode("utf-8", errors="replace")) from e
        except URLError as e:
            raise RuntimeError(f"Network error: {e}") from e


def solve_challenge(token: str, count: int, size: int, difficulty: int) -> list[int]:
    """Find, for each puzzle, the smallest integer whose hash has the target prefix."""
    start_time = time.time()
    attempts = 0
    solutions = []
    for i in range(1, count + 1):
        salt = derive(f"{token}{i}", size)
        target = derive(f"{token}{i}d", difficulty)
        n = 0
        while not hashlib.sha256(f"{salt}{n}".encode()).hexdigest().startswith(target):
            n += 1
        attempts += n + 1
        solutions.append(n)

    elapsed = max(time.time() - start_time, 1e-6)
    log(f"Solved {count} puzzles: {attempts:,} hashes ({elapsed:.2f}s, {attempts/elapsed:.0f} H/s)")
    return solutions


@dataclass
class SmokeContext:
    client: HttpClient
    max_health_attempts: int

    redeem_body: dict[str, Any] | None = None
    verification_token: str | None = None

    def require_redeem_body(self) -> dict[str, Any]:
        if self.redeem_body is None:
            raise RuntimeError("Missing redeem body (step ordering bug)")
        return self.redeem_body

    def require_verification_token(self) -> str:
        if not self.verification_token:
            raise RuntimeError("Missing verification token (step ordering bug)")
        return self.verification_token


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[SmokeContext], None]


def step_health(ctx: SmokeContext) -> None:
    for attempt in range(1, ctx.max_health_attempts + 1):
        try:
            if ctx.client.get_json("/health").get("status") == "healthy":
                return
        except (ApiError, RuntimeError) as e:
            log(f"Health attempt {attempt}/{ctx.max_health_attempts} failed: {e}")
        time.sleep(HEALTH_RETRY_SLEEP_SECONDS)
    raise RuntimeError("Service never reported healthy")


def step_solve(ctx: SmokeContext) -> None:
    created = ctx.client.post_json("/cap/challenge")
    token = created.get("token")
    params = created.get("challenge") or {}
    if not token or not {"c", "s", "d"} <= params.keys():
        raise RuntimeError(f"Unexpected challenge response: {created}")
    log(f"Challenge: c={params['c']} s={params['s']} d={params['d']}")

    solutions = solve_challenge(token, params["c"], params["s"], params["d"])
    ctx.redeem_body = {"token": token, "solutions": solutions}


def step_redeem(ctx: SmokeContext) -> None:
    redeemed = ctx.client.post_json("/cap/redeem", ctx.require_redeem_body())
    if not redeemed.get("success"):
        raise RuntimeError(f"Redemption failed: {redeemed.get('message')}")
    ctx.verification_token = redeemed["token"]


def step_replay(ctx: SmokeContext) -> None:
    replay = ctx.client.post_json("/cap/redeem", ctx.require_redeem_body())
    if replay.get("success"):
        raise RuntimeError("Replayed redemption was accepted")


def step_validate(ctx: SmokeContext) -> None:
    body = {"token": ctx.require_verification_token()}
    if not ctx.client.post_json("/cap/validate", body).get("success"):
        raise RuntimeError("Fresh verification token was rejected")
    if ctx.client.post_json("/cap/validate", body).get("success"):
        raise RuntimeError("Verification token was accepted twice")


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    overall_start = time.time()
    for step in steps:
        log(f"STEP: {step.name}")
        start = time.time()
        try:
            step.run(ctx)
        except Exception as e:
            log(f"FAILED: {step.name} ({time.time() - start:.2f}s) - {e}")
            return False
        log(f"OK: {step.name} ({time.time() - start:.2f}s)")
    log(f"Total: {time.time() - overall_start:.2f}s")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="powcap smoke test")
    parser.add_argument("base_url", help="Base URL (e.g., https://staging.example.com)")
    parser.add_argument(
        "--health-only",
        action="store_true",
        help="Only run health check, skip full flow",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"HTTP timeout seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    parser.add_argument(
        "--max-health-attempts",
        type=int,
        default=30,
        help="Max health check attempts (default: 30)",
    )
    args = parser.parse_args()

    client = HttpClient(base_url=args.base_url.rstrip("/"), timeout_seconds=args.timeout)
    ctx = SmokeContext(client=client, max_health_attempts=args.max_health_attempts)

    steps = [Step("health", step_health)]
    if args.health_only:
        log("Health-only mode: skipping full flow")
    else:
        steps.extend(
            [
                Step("solve challenge", step_solve),
                Step("redeem", step_redeem),
                Step("replay rejected", step_replay),
                Step("validate once", step_validate),
            ]
        )

    return 0 if run_steps(ctx, steps) else 1


if __name__ == "__main__":
    sys.exit(main())
