from typing import Dict, Any, Optional
from fastapi import Request

IDENTITY_HEADER = "X-Wallet-Address"


def get_requester_identity(request: Request) -> Optional[str]:
    """
    Identity of the caller as announced by the connected wallet.

    Returns:
        The wallet address from the identity header, or None when the caller
        did not send one
    """
    identity = request.headers.get(IDENTITY_HEADER)
    if identity is None:
        return None
    identity = identity.strip()
    return identity or None


def get_requester_context(request: Request) -> Dict[str, Any]:
    """Client details recorded alongside verification and download events."""
    return {
        "ipAddress": request.client.host if request.client else "unknown",
        "userAgent": request.headers.get("user-agent"),
    }
