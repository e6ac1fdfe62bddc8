"""Forwards user creation to the RouterLimits API."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple
from urllib import error as urllib_error, request as urllib_request

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger("proxy.users")

Opener = Callable[..., Any]


class ProxyUsersService:
    """Relays ``POST /users`` to the upstream and returns its status and JSON body."""

    def __init__(
        self,
        *,
        api_url: str,
        api_key: Optional[str],
        timeout: float = 10.0,
        opener: Opener = urllib_request.urlopen,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._opener = opener

    def _build_request(self, payload: Dict[str, Any]) -> urllib_request.Request:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return urllib_request.Request(
            f"{self.api_url}/users",
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

    def _send(self, payload: Dict[str, Any]) -> Tuple[int, Any]:
        req = self._build_request(payload)
        try:
            with self._opener(req, timeout=self._timeout) as response:
                status_code = response.status
                body = response.read()
        except urllib_error.HTTPError as exc:
            status_code = exc.code
            body = exc.read()
            logger.warning(
                "Upstream user creation rejected",
                extra={"upstream_status": status_code, "upstream_url": self.api_url},
            )
        return status_code, _decode_body(body)

    async def create_user(self, payload: Dict[str, Any]) -> Tuple[int, Any]:
        return await run_in_threadpool(self._send, payload)


def _decode_body(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"message": body.decode("utf-8", errors="replace")}
