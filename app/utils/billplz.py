"""
Billplz X-Signature helpers.

The gateway signs every callback: each field except ``x_signature`` becomes
``key + value``, the pieces are sorted case-insensitively, joined with ``|``
and signed with HMAC-SHA256 using the collection's X Signature Key.
"""
import hashlib
import hmac

SIGNATURE_FIELD = "x_signature"


def _stringify(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def signing_string(payload: dict) -> str:
    parts = [
        f"{key}{_stringify(value)}"
        for key, value in payload.items()
        if key != SIGNATURE_FIELD
    ]
    return "|".join(sorted(parts, key=str.lower))


def compute_signature(payload: dict, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        signing_string(payload).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(payload: dict, secret: str | None) -> bool:
    signature = payload.get(SIGNATURE_FIELD)
    if not secret or not signature:
        return False
    return hmac.compare_digest(str(signature), compute_signature(payload, secret))
