import json

from waitlist.core import Request


def post_json(payload, path="/api/waitlist", headers=None, client_ip="203.0.113.7"):
    body = payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
    if isinstance(body, str):
        body = body.encode("utf-8")
    return Request("POST", path, headers={"Content-Type": "application/json", **(headers or {})},
                   body=body, client_ip=client_ip)
