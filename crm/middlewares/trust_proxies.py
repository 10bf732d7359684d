from starlette.types import ASGIApp, Receive, Scope, Send


class TrustedProxiesMiddleware:
    """Resolve the client address from X-Forwarded-For behind ``proxies_count`` proxies.

    Each trusted proxy appends the address it received the request from, so the
    client is the entry ``proxies_count`` positions from the end. Entries to the
    left of that are client-supplied and ignored. With ``proxies_count=0`` the
    header is not trusted at all.
    """

    def __init__(self, app: ASGIApp, proxies_count: int = 1) -> None:
        self.app = app
        self.proxies_count = proxies_count

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.proxies_count > 0:
            headers = dict(scope.get("headers", []))
            forwarded = headers.get(b"x-forwarded-for", b"").decode()
            ips = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
            if ips:
                real_ip = ips[-min(self.proxies_count, len(ips))]
                # request.client.host is what slowapi and audit records read.
                port = scope["client"][1] if scope.get("client") else 0
                scope["client"] = (real_ip, port)

        await self.app(scope, receive, send)
