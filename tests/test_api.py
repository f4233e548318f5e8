"""Tests for the /cap HTTP endpoints."""

import asyncio
import re
from unittest.mock import patch

from powcap.config import settings
from powcap.services.crypto_utils import now_ms
from tests.test_utils import KNOWN_SOLUTIONS, KNOWN_TOKEN, challenge_data, solve


def small_challenges():
    """Keep HTTP flow tests fast."""
    return patch.multiple(
        settings, challenge_count=3, challenge_size=8, challenge_difficulty=1
    )


class TestChallengeEndpoint:
    def test_create_challenge(self, client):
        response = client.post("/cap/challenge")

        assert response.status_code == 200
        data = response.json()
        assert data["challenge"] == {"c": 50, "s": 32, "d": 4}
        assert re.match(r"^[0-9a-f]{50}$", data["token"])
        assert data["expires"] > now_ms()

    def test_uses_configured_parameters(self, client):
        with small_challenges():
            response = client.post("/cap/challenge")

        assert response.json()["challenge"] == {"c": 3, "s": 8, "d": 1}

    def test_storage_failure_returns_500(self, client, sql_storage):
        with patch.object(sql_storage.challenges, "store", side_effect=RuntimeError("boom")):
            response = client.post("/cap/challenge")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to create challenge"}


class TestRedeemEndpoint:
    def test_full_flow(self, client):
        with small_challenges():
            challenge = client.post("/cap/challenge").json()

        solutions = solve(challenge["token"], 3, 8, 1)
        response = client.post(
            "/cap/redeem", json={"token": challenge["token"], "solutions": solutions}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert re.match(r"^[0-9a-f]{16}:[0-9a-f]{30}$", data["token"])
        assert data["expires"] > now_ms()
        assert "message" not in data

        validate = client.post("/cap/validate", json={"token": data["token"]})
        assert validate.json() == {"success": True}

    def test_replay_fails(self, client):
        with small_challenges():
            challenge = client.post("/cap/challenge").json()
        body = {"token": challenge["token"], "solutions": solve(challenge["token"], 3, 8, 1)}

        assert client.post("/cap/redeem", json=body).json()["success"] is True
        replay = client.post("/cap/redeem", json=body).json()

        assert replay == {"success": False, "message": "Challenge invalid or expired"}

    def test_wrong_solutions(self, client, sql_storage):
        asyncio.run(sql_storage.challenges.store(KNOWN_TOKEN, challenge_data()))

        response = client.post("/cap/redeem", json={"token": KNOWN_TOKEN, "solutions": [51, 23]})

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "Invalid solution"}

    def test_known_challenge(self, client, sql_storage):
        asyncio.run(sql_storage.challenges.store(KNOWN_TOKEN, challenge_data()))

        response = client.post(
            "/cap/redeem", json={"token": KNOWN_TOKEN, "solutions": KNOWN_SOLUTIONS}
        )

        assert response.json()["success"] is True

    def test_missing_fields(self, client):
        for body in [{}, {"token": "abc"}, {"solutions": [1]}, {"token": "", "solutions": [1]}]:
            response = client.post("/cap/redeem", json=body)
            assert response.status_code == 400
            assert response.json() == {"success": False, "error": "Missing token or solutions"}

    def test_invalid_body(self, client):
        response = client.post("/cap/redeem", json={"token": "abc", "solutions": ["x"]})

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "Invalid body"}


class TestValidateEndpoint:
    def test_malformed_token(self, client):
        response = client.post("/cap/validate", json={"token": "not-a-token"})

        assert response.status_code == 200
        assert response.json() == {"success": False}

    def test_keep_token(self, client):
        with small_challenges():
            challenge = client.post("/cap/challenge").json()
        redeemed = client.post(
            "/cap/redeem",
            json={"token": challenge["token"], "solutions": solve(challenge["token"], 3, 8, 1)},
        ).json()

        body = {"token": redeemed["token"], "keepToken": True}
        assert client.post("/cap/validate", json=body).json() == {"success": True}
        assert client.post("/cap/validate", json=body).json() == {"success": True}
        assert client.post("/cap/validate", json={"token": redeemed["token"]}).json() == {
            "success": True
        }
        assert client.post("/cap/validate", json={"token": redeemed["token"]}).json() == {
            "success": False
        }


class TestServiceSurface:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_secure_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert response.headers["Referrer-Policy"] == "no-referrer"

    def test_cors_preflight(self, client):
        response = client.options(
            "/cap/challenge",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers
