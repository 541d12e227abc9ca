"""
OTP generation, hashing and comparison utilities.
Plain OTP is never stored; only hashes are persisted.
"""

import hashlib
import hmac
import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Generate a 6-digit numeric OTP in 100000-999999 (no leading zeros)."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp(otp: str) -> str:
    """Hex SHA-256 digest of the OTP, stored in place of the code."""
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def otp_hashes_match(supplied_hash: str, stored_hash: str) -> bool:
    """
    Constant-time comparison of two OTP digests.
    Both sides are re-digested to fixed 32-byte buffers so a length
    mismatch goes through the same comparison as a content mismatch.
    """
    if not supplied_hash or not stored_hash:
        return False
    return hmac.compare_digest(
        hashlib.sha256(supplied_hash.encode("utf-8")).digest(),
        hashlib.sha256(stored_hash.encode("utf-8")).digest(),
    )


def verify_otp(otp: str, otp_hash: str) -> bool:
    """Verify a plain OTP against a stored hash."""
    return bool(otp) and otp_hashes_match(hash_otp(otp), otp_hash)
