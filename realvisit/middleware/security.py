"""Response hardening for the tracking service."""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

BASE_HEADERS = {
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

# Beacon responses describe one visit and are read by merchant storefronts
TRACKING_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
    "Cross-Origin-Resource-Policy": "cross-origin",
}

STRIPPED_HEADERS = ("server", "x-powered-by")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, tracking_prefixes: tuple[str, ...] = ("/api/",)):
        super().__init__(app)
        self.tracking_prefixes = tracking_prefixes

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        for name in STRIPPED_HEADERS:
            if name in response.headers:
                del response.headers[name]

        response.headers.update(BASE_HEADERS)
        if request.url.path.startswith(self.tracking_prefixes):
            response.headers.update(TRACKING_HEADERS)
        elif "Content-Security-Policy" not in response.headers:
            response.headers["Content-Security-Policy"] = "frame-ancestors 'none'"

        return response
