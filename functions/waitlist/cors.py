from typing import Iterable, Optional

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"
MAX_AGE = "600"
VARY = "Origin, Access-Control-Request-Method, Access-Control-Request-Headers"
FORBIDDEN_MESSAGE = "Origin not allowed by CORS policy."


class CorsPolicy:
    def __init__(self, allowed_origins: Iterable[str] = ("*",)):
        self.allowed_origins = tuple(allowed_origins)

    @property
    def wildcard(self) -> bool:
        return "*" in self.allowed_origins

    def is_allowed(self, origin: Optional[str]) -> bool:
        # same-origin and non-browser requests carry no Origin header
        if not origin:
            return True
        return self.wildcard or origin in self.allowed_origins

    def headers_for(self, origin: Optional[str]) -> dict:
        headers = {
            "Vary": VARY,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Max-Age": MAX_AGE,
        }
        if origin and self.is_allowed(origin):
            headers["Access-Control-Allow-Origin"] = origin
        elif not origin and self.wildcard:
            headers["Access-Control-Allow-Origin"] = "*"
        return headers
