"""Standalone HTTP server for local development and self-hosting.

    python -m waitlist.server --port 3000
    python -m waitlist.server --memory      # no DynamoDB needed
"""
import argparse
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from dotenv import load_dotenv

from waitlist.config import Settings
from waitlist.core import Request, WaitlistApp, json_response
from waitlist.store import InMemoryWaitlistStore, build_store

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 16 * 1024
MAX_DRAIN_BYTES = 1024 * 1024


class WaitlistRequestHandler(BaseHTTPRequestHandler):
    app: WaitlistApp = None

    def _client_ip(self):
        forwarded = self.headers.get("X-Forwarded-For", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return self.client_address[0]

    def _content_length(self):
        length = int(self.headers.get("Content-Length") or 0)
        if length < 0:
            raise ValueError(length)
        return length

    def _discard(self, length):
        # drain so the client sees the 413 instead of a reset; give up past the cap
        remaining = min(length, MAX_DRAIN_BYTES)
        while remaining > 0:
            chunk = self.rfile.read(min(remaining, 64 * 1024))
            if not chunk:
                break
            remaining -= len(chunk)

    def _send(self, response):
        payload = response.json_body().encode("utf-8")
        self.send_response(response.status_code)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload and self.command != "HEAD":
            self.wfile.write(payload)

    def _handle(self):
        request = Request(method=self.command,
                          path=self.path.split("?", 1)[0],
                          headers=dict(self.headers.items()),
                          client_ip=self._client_ip())
        try:
            length = self._content_length()
        except ValueError:
            # framing is unknown, so the connection cannot be reused
            self.close_connection = True
            request.malformed = True
            length = 0
        if length > MAX_BODY_BYTES:
            self._discard(length)
            self.close_connection = True
            too_large = json_response(413, {"error": "Request body too large."})
            self._send(self.app.finalize(request, too_large))
            return
        request.body = self.rfile.read(length) if length else b""
        self._send(self.app.handle(request))

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = do_HEAD = _handle

    def log_message(self, fmt, *args):
        logger.info("%s - %s", self.address_string(), fmt % args)


def make_server(app: WaitlistApp, host="127.0.0.1", port=3000) -> ThreadingHTTPServer:
    handler_cls = type("BoundWaitlistRequestHandler", (WaitlistRequestHandler,), {"app": app})
    return ThreadingHTTPServer((host, port), handler_cls)


def main(argv=None):
    load_dotenv()
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="Serve the waitlist API.")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--memory", action="store_true",
                        help="keep signups in process memory instead of DynamoDB")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = InMemoryWaitlistStore() if args.memory else build_store(settings)
    server = make_server(WaitlistApp(store, settings), args.host, args.port)
    logger.info("Server listening on http://%s:%d", args.host, server.server_address[1])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
