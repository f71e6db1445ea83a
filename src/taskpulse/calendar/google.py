# src/taskpulse/calendar/google.py

"""
Google Calendar adapters.

- TokenAuthorizer: holds an OAuth access token obtained outside the app
  (env var or a token file written by whatever OAuth helper the user runs).
- GoogleCalendarClient: Calendar v3 REST calls over a shared httpx.AsyncClient.

Transport errors and non-2xx answers become ExternalApiError; 401 becomes
AuthorizationError so callers can tell "not connected" from "call failed".
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import UTC, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import AuthorizationError, ExternalApiError
from ..core.clock import SystemClock
from ..core.ports import CalendarAuthorizer, Clock

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://www.googleapis.com/calendar/v3"
DEFAULT_REVOKE_URL = "https://oauth2.googleapis.com/revoke"


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _read_token_file(path: Path) -> str | None:
    try:
        raw = path.read_text("utf-8").strip()
    except FileNotFoundError:
        return None
    if not raw:
        return None
    if raw.startswith("{"):
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Token file %s is not valid JSON", path)
            return None
        token = data.get("access_token") if isinstance(data, dict) else None
        return str(token) if token else None
    return raw


class TokenAuthorizer:
    def __init__(
            self,
            *,
            token: str | None = None,
            token_path: str | Path | None = None,
            http: httpx.AsyncClient | None = None,
            revoke_url: str = DEFAULT_REVOKE_URL,
    ) -> None:
        self._configured_token = (token or "").strip() or None
        self._token: str | None = None
        self._token_path = Path(token_path).expanduser() if token_path else None
        self._http = http
        self._revoke_url = revoke_url

    async def authorize(self) -> bool:
        if self._token:
            return True
        token = self._configured_token
        if token is None and self._token_path is not None:
            token = await asyncio.to_thread(_read_token_file, self._token_path)
        self._token = token
        if token:
            logger.info("Calendar authorized")
        else:
            logger.info("Calendar authorization failed: no access token configured")
        return self._token is not None

    def is_authorized(self) -> bool:
        return self._token is not None

    def access_token(self) -> str:
        if self._token is None:
            raise AuthorizationError("calendar is not connected")
        return self._token

    async def revoke(self) -> None:
        """Best-effort revoke at the provider, then forget the token locally."""
        token, self._token = self._token, None
        self._configured_token = None
        if token and self._http is not None:
            try:
                resp = await self._http.post(self._revoke_url, params={"token": token})
                if resp.is_error:
                    logger.warning("Token revoke returned %s", resp.status_code)
            except httpx.HTTPError as e:
                logger.warning("Token revoke failed: %s", e)
        if self._token_path is not None:
            with contextlib.suppress(FileNotFoundError):
                await asyncio.to_thread(self._token_path.unlink)
        logger.info("Calendar access revoked")


class GoogleCalendarClient:
    def __init__(
            self,
            authorizer: CalendarAuthorizer,
            *,
            http: httpx.AsyncClient | None = None,
            calendar_id: str = "primary",
            base_url: str = DEFAULT_API_BASE,
            clock: Clock | None = None,
            connect_timeout_s: float = 5.0,
            read_timeout_s: float = 15.0,
    ) -> None:
        self._auth = authorizer
        self._clock = clock or SystemClock()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=_make_timeout(connect_timeout_s, read_timeout_s))
        self._events_url = f"{base_url.rstrip('/')}/calendars/{quote(calendar_id, safe='')}/events"

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(
            self,
            method: str,
            url: str,
            *,
            json_body: dict[str, Any] | None = None,
            params: dict[str, Any] | None = None,
            ok_statuses: tuple[int, ...] = (),
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._auth.access_token()}"}
        try:
            resp = await self._http.request(method, url, json=json_body, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise ExternalApiError(f"{method} {url} failed: {e}") from e

        if resp.status_code == 401:
            raise AuthorizationError("calendar token rejected (401)")
        if resp.is_error and resp.status_code not in ok_statuses:
            raise ExternalApiError(
                f"{method} {url} -> {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp

    async def create_event(self, event: dict[str, Any]) -> str:
        resp = await self._request("POST", self._events_url, json_body=event)
        event_id = (resp.json() or {}).get("id")
        if not event_id:
            raise ExternalApiError("calendar returned no event id", status_code=resp.status_code)
        logger.debug("Calendar event created id=%s", event_id)
        return str(event_id)

    async def update_event(self, event_id: str, event: dict[str, Any]) -> bool:
        await self._request("PUT", f"{self._events_url}/{quote(event_id, safe='')}", json_body=event)
        return True

    async def delete_event(self, event_id: str) -> bool:
        # 404/410: already gone, which is the state we want.
        resp = await self._request(
            "DELETE",
            f"{self._events_url}/{quote(event_id, safe='')}",
            ok_statuses=(404, 410),
        )
        if resp.status_code in (404, 410):
            logger.info("Calendar event %s was already deleted", event_id)
        return True

    async def list_upcoming(self, window_days: int = 7, *, query: str | None = None) -> list[dict[str, Any]]:
        now = self._clock.now().astimezone(UTC)
        params: dict[str, Any] = {
            "timeMin": now.isoformat(),
            "timeMax": (now + timedelta(days=max(1, int(window_days)))).isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if query:
            params["q"] = query
        resp = await self._request("GET", self._events_url, params=params)
        items = (resp.json() or {}).get("items") or []
        return [i for i in items if isinstance(i, dict)]
