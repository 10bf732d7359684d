from fastapi import Request

UNKNOWN_IP = "Unknown IP"


def client_ip(request: Request | None) -> str:
    """Peer address as resolved by ``TrustedProxiesMiddleware``."""
    if request is None or request.client is None or not request.client.host:
        return UNKNOWN_IP
    return request.client.host


def user_agent(request: Request | None) -> str:
    if request is None:
        return ""
    return (request.headers.get("user-agent") or "")[:512]
