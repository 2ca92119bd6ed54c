"""
One-time codes and password-reset tokens.

Each email has two independent slots in Redis:

- ``otp:{email}``   6-digit code, 10 minutes, consumed on a matching verify
- ``reset:{email}`` 64 hex chars, 15 minutes, consumed on a password reset

Consuming is a single compare-and-delete script run inside Redis, so two
requests presenting the same value cannot both succeed. A mismatched
attempt leaves the stored value in place so the user can retry until the
TTL runs out. Expiry is Redis's job; an expired slot simply reads as
missing.
"""
import logging
import secrets

import redis

logger = logging.getLogger(__name__)

OTP_TTL_SECONDS = 10 * 60
RESET_TOKEN_TTL_SECONDS = 15 * 60
RESET_TOKEN_BYTES = 32

# Returns -1 when nothing is stored, 0 on mismatch, 1 once deleted.
CONSUME_SCRIPT = """
local stored = redis.call('GET', KEYS[1])
if not stored then
    return -1
end
if stored ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""

MISSING = -1
MISMATCH = 0


class VerificationError(Exception):
    pass


class CodeNotFound(VerificationError):
    """Nothing stored for this email, or it expired."""


class CodeMismatch(VerificationError):
    """Something is stored but the presented value differs."""


def otp_key(email: str) -> str:
    return f"otp:{email}"


def reset_key(email: str) -> str:
    return f"reset:{email}"


def generate_code() -> str:
    return str(secrets.randbelow(900000) + 100000)


def _consume(client: redis.Redis, key: str, presented: str) -> None:
    consume = client.register_script(CONSUME_SCRIPT)
    outcome = int(consume(keys=[key], args=[str(presented)]))

    if outcome == MISSING:
        raise CodeNotFound(key)
    if outcome == MISMATCH:
        raise CodeMismatch(key)


# =====================================================
# OTP SLOT
# =====================================================

def issue_code(client: redis.Redis, email: str) -> str:
    code = generate_code()
    client.set(otp_key(email), code, ex=OTP_TTL_SECONDS)
    logger.info("Issued verification code | email=%s", email)
    return code


def verify_code(client: redis.Redis, email: str, code: str) -> None:
    _consume(client, otp_key(email), code)
    logger.info("Verification code consumed | email=%s", email)


# =====================================================
# RESET-TOKEN SLOT
# =====================================================

def issue_reset_token(client: redis.Redis, email: str) -> str:
    token = secrets.token_hex(RESET_TOKEN_BYTES)
    client.set(reset_key(email), token, ex=RESET_TOKEN_TTL_SECONDS)
    logger.info("Issued password reset token | email=%s", email)
    return token


def consume_reset_token(client: redis.Redis, email: str, token: str) -> None:
    _consume(client, reset_key(email), token)
    logger.info("Password reset token consumed | email=%s", email)
