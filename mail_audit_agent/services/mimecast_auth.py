"""Per-request HMAC signing for the Mimecast API."""

import base64
import hashlib
import hmac
import uuid
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from email.utils import format_datetime

import httpx


def http_date(moment: datetime) -> str:
    """RFC 7231 date, e.g. ``Mon, 19 Oct 2026 12:00:00 GMT``."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def sign_request(
    secret_key: str,
    date: str,
    request_id: str,
    path: str,
    app_key: str,
) -> str:
    """
    Compute the Mimecast request signature.

    The canonical string is ``{date}:{request_id}:{path}:{app_key}``, signed
    with HMAC-SHA1 keyed by the base64-decoded secret key.

    Returns:
        Base64 encoded digest
    """
    data_to_sign = f"{date}:{request_id}:{path}:{app_key}"
    digest = hmac.new(
        base64.b64decode(secret_key),
        data_to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class MimecastAuth(httpx.Auth):
    """
    httpx auth flow adding Mimecast signature headers.

    Runs once per outgoing request, so every attempt gets its own request id,
    date and signature.
    """

    def __init__(
        self,
        app_id: str,
        app_key: str,
        access_key: str,
        secret_key: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        request_id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.app_id = app_id
        self.app_key = app_key
        self.access_key = access_key
        self.secret_key = secret_key
        self.clock = clock
        self.request_id_factory = request_id_factory

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request_id = self.request_id_factory()
        date = http_date(self.clock())
        signature = sign_request(
            self.secret_key,
            date,
            request_id,
            request.url.path,
            self.app_key,
        )

        request.headers["x-mc-req-id"] = request_id
        request.headers["x-mc-date"] = date
        request.headers["x-mc-app-id"] = self.app_id
        request.headers["Authorization"] = f"MC {self.access_key}:{signature}"
        yield request
