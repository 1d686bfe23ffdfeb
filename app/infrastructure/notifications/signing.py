from __future__ import annotations

import hmac

SIGNATURE_HEADER = "X-Signature-256"


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, "sha256").hexdigest()
    return f"sha256={digest}"


def verify_signature(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Check a delivery the way a subscriber would."""
    if not signature_header:
        return False

    try:
        algo, signature = signature_header.split("=", 1)
    except ValueError:
        return False

    if algo.lower() != "sha256":
        return False

    expected = hmac.new(secret.encode("utf-8"), body, "sha256").hexdigest()
    return hmac.compare_digest(expected, signature)
