"""
Webhook authentication for the CI server.

GitHub signs every delivery with the shared webhook secret and sends the
HMAC-SHA256 of the raw body in the X-Hub-Signature-256 header. Deliveries
whose signature does not match are rejected before their payload is read.
"""

import hashlib
import hmac

from fastapi import Header, HTTPException, Request

SIGNATURE_HEADER = "X-Hub-Signature-256"


def compute_signature(secret: str, body: bytes) -> str:
    """
    Compute the signature GitHub sends for a payload.

    Args:
        secret: Shared webhook secret
        body: Raw request body

    Returns:
        Signature string in the format "sha256=<hex digest>"

    Example:
        >>> compute_signature("secret", b"{}")
        'sha256=...'  # 64-character hex digest after the prefix
    """
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """
    Check a delivery's signature in constant time.

    Args:
        secret: Shared webhook secret
        body: Raw request body
        signature: Value of the X-Hub-Signature-256 header, if any

    Returns:
        True if the signature matches the body
    """
    if not signature:
        return False
    return hmac.compare_digest(signature, compute_signature(secret, body))


def create_verify_signature_dependency(secret: str):
    """
    Create a FastAPI dependency that rejects unsigned or mis-signed deliveries.

    Args:
        secret: Shared webhook secret

    Returns:
        Async function returning the verified raw body

    Example:
        verify = create_verify_signature_dependency(config.webhook_secret)

        @app.post("/github/web-hook")
        async def hook(body: bytes = Depends(verify)):
            ...
    """

    async def verify_github_signature(
        request: Request,
        x_hub_signature_256: str | None = Header(default=None),
    ) -> bytes:
        """
        Validate the delivery signature and return the raw body.

        Raises:
            HTTPException: 401 if the signature is missing or invalid
        """
        body = await request.body()

        if not x_hub_signature_256:
            raise HTTPException(status_code=401, detail="No signature")

        if not verify_signature(secret, body, x_hub_signature_256):
            raise HTTPException(status_code=401, detail="Invalid signature")

        return body

    return verify_github_signature
