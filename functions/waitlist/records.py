import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

DEFAULT_SOURCE = "landing-page"


@dataclass(frozen=True)
class WaitlistEntry:
    email: str
    created_at: str
    source: str
    request_id: str
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None

    def to_item(self) -> dict:
        item = {
            "email": self.email,
            "createdAt": self.created_at,
            "source": self.source,
            "requestId": self.request_id,
        }
        if self.user_agent:
            item["userAgent"] = self.user_agent
        if self.client_ip:
            item["ip"] = self.client_ip
        return item


def isoformat_utc(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_entry(email: str,
                source=None,
                user_agent: Optional[str] = None,
                client_ip: Optional[str] = None,
                now: Optional[datetime] = None,
                default_source: str = DEFAULT_SOURCE) -> WaitlistEntry:
    source = str(source).strip() if source is not None else ""
    return WaitlistEntry(
        email=email,
        created_at=isoformat_utc(now),
        source=source or default_source,
        request_id=str(uuid.uuid4()),
        user_agent=user_agent or None,
        client_ip=client_ip or None,
    )
