import hashlib
import secrets
import time


def random_hex(num_bytes: int) -> str:
    """Hex-encode ``num_bytes`` bytes from the OS CSPRNG."""
    return secrets.token_hex(num_bytes)


def sha256_hex(value: str) -> str:
    """SHA-256 of the UTF-8 encoding of ``value``, as lowercase hex."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def now_ms() -> int:
    """Current Unix time in integer milliseconds."""
    return int(time.time() * 1000)
