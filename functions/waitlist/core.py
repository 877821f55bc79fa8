"""Hosting-independent request handling for the waitlist endpoint.

Adapters translate their environment's request shape into a ``Request``,
call ``WaitlistApp.handle`` and translate the ``Response`` back.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from waitlist.config import Settings
from waitlist.cors import FORBIDDEN_MESSAGE, CorsPolicy
from waitlist.errors import (
    ConflictError,
    InvalidEmail,
    InvalidJSONBody,
    StoreError,
    TransientInfrastructureError,
    WaitlistError,
)
from waitlist.records import build_entry
from waitlist.store import InsertOutcome
from waitlist.validation import validate_email

logger = logging.getLogger(__name__)

WAITLIST_PATH = "/api/waitlist"
HEALTH_PATH = "/health"


@dataclass
class Request:
    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_ip: Optional[str] = None
    # set by adapters when the transport body could not be decoded
    malformed: bool = False

    def __post_init__(self):
        self.method = (self.method or "").upper()
        self.headers = {k.lower(): v for k, v in (self.headers or {}).items()}

    def header(self, name: str, default=None):
        return self.headers.get(name.lower(), default)


@dataclass
class Response:
    status_code: int
    body: Optional[dict] = None
    headers: dict = field(default_factory=dict)

    def json_body(self) -> str:
        return json.dumps(self.body) if self.body is not None else ""


def json_response(status_code: int, body: Optional[dict]) -> Response:
    headers = {"Content-Type": "application/json"} if body is not None else {}
    return Response(status_code, body, headers)


def parse_body(raw) -> dict:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidJSONBody()
    if not (raw or "").strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise InvalidJSONBody()
    if not isinstance(body, dict):
        raise InvalidJSONBody()
    return body


class WaitlistApp:
    def __init__(self, store, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()
        self.cors = CorsPolicy(self.settings.allowed_origins)

    def handle(self, request: Request) -> Response:
        return self.finalize(request, self._dispatch(request, request.header("origin")))

    def finalize(self, request: Request, response: Response) -> Response:
        response.headers = {**self.cors.headers_for(request.header("origin")), **response.headers}
        return response

    def _dispatch(self, request: Request, origin: Optional[str]) -> Response:
        allowed = self.cors.is_allowed(origin)
        if request.method == "OPTIONS":
            if not allowed:
                return json_response(403, {"error": FORBIDDEN_MESSAGE})
            return json_response(204, None)
        if not allowed and request.path.startswith("/api/"):
            return json_response(403, {"error": FORBIDDEN_MESSAGE})

        if request.method == "GET" and request.path == HEALTH_PATH:
            return json_response(200, {"ok": True})
        if request.method == "POST" and request.path == WAITLIST_PATH:
            try:
                return self.submit(request)
            except StoreError as e:
                return self._failure(e)
            except WaitlistError as e:
                return json_response(e.status_code, {"error": e.public_message})
        return json_response(404, {"error": "Not found"})

    def submit(self, request: Request) -> Response:
        if request.malformed:
            raise InvalidJSONBody()
        body = parse_body(request.body)
        email, valid = validate_email(body.get("email"))
        if not valid:
            raise InvalidEmail()

        source = body.get("source")
        entry = build_entry(email,
                            source=source if isinstance(source, str) else None,
                            user_agent=request.header("user-agent"),
                            client_ip=request.client_ip,
                            default_source=self.settings.default_source)
        result = self.store.insert_if_absent(entry)
        if result.outcome is InsertOutcome.CREATED:
            logger.info("New waitlist signup: email=%s source=%s request_id=%s",
                        email, entry.source, entry.request_id)
            return json_response(201, {"ok": True})
        if result.outcome is InsertOutcome.ALREADY_EXISTS:
            logger.info("Waitlist re-submission for email=%s", email)
            raise ConflictError()
        raise result.error or TransientInfrastructureError()

    def _failure(self, error: StoreError) -> Response:
        logger.error("Failed to save email: %s", error, exc_info=error)
        body = {"error": error.public_message}
        if not self.settings.production:
            body["details"] = str(error)
        return json_response(error.status_code, body)
