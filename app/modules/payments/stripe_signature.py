import hashlib
import hmac
import time
from typing import List, Optional, Tuple


class SignatureVerificationError(ValueError):
    pass


def parse_signature_header(header: str) -> Tuple[Optional[int], List[str]]:
    """Split ``t=<ts>,v1=<sig>[,v1=<sig>...]`` into the timestamp and v1 signatures."""
    timestamp = None
    signatures = []
    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise SignatureVerificationError("Malformed timestamp in signature header")
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def verify_signature(
    payload: bytes,
    header: str,
    secret: str,
    tolerance: int = 300,
    now: Optional[float] = None,
) -> int:
    """Validate a Stripe-Signature header; returns the signed timestamp."""
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")
    timestamp, signatures = parse_signature_header(header)
    if timestamp is None or not signatures:
        raise SignatureVerificationError("Unable to extract timestamp and signatures from header")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise SignatureVerificationError("No signatures found matching the expected signature")

    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise SignatureVerificationError("Timestamp outside the tolerance zone")
    return timestamp
