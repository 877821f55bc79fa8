import base64
import binascii
import logging

from waitlist.config import Settings
from waitlist.core import Request, Response, WaitlistApp
from waitlist.store import build_store

logger = logging.getLogger()

_APP = None


def get_app() -> WaitlistApp:
    # built once per container, reused on warm invocations
    global _APP
    if _APP is None:
        settings = Settings.from_env()
        logger.setLevel(settings.log_level)
        _APP = WaitlistApp(build_store(settings), settings)
    return _APP


def request_from_event(event: dict) -> Request:
    ctx = event.get("requestContext") or {}
    http = ctx.get("http") or {}
    identity = ctx.get("identity") or {}

    body = event.get("body") or ""
    malformed = False
    if event.get("isBase64Encoded") and body:
        try:
            body = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            body, malformed = b"", True
    elif isinstance(body, str):
        body = body.encode("utf-8")

    headers = dict(event.get("headers") or {})
    if "user-agent" not in {k.lower() for k in headers}:
        ua = http.get("userAgent") or identity.get("userAgent")
        if ua:
            headers["User-Agent"] = ua

    return Request(
        method=http.get("method") or event.get("httpMethod") or "",
        path=event.get("rawPath") or event.get("path") or "",
        headers=headers,
        body=body,
        client_ip=http.get("sourceIp") or identity.get("sourceIp"),
        malformed=malformed,
    )


def to_proxy_response(response: Response) -> dict:
    return {
        "statusCode": response.status_code,
        "headers": response.headers,
        "body": response.json_body(),
    }


def handler(event, context, app=None):
    app = app or get_app()
    return to_proxy_response(app.handle(request_from_event(event or {})))
