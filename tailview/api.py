"""Client for the log query API of the remote log service"""

import json
import logging
import urllib.parse
from typing import Any

import requests

from tailview.models.entry import EntryDocument
from tailview.models.session import Page
from tailview.timespec import resolve_time_spec, to_epoch_millis

DEFAULT_BASE_URL = "https://app.tailstream.io"
DEFAULT_TIMEOUT = 15.0


class ApiError(Exception):
    """Raised when a request to the log service fails"""


class LogsClient:
    """Fetches pages of log entries from one stream.

    `fetch` and `reload` are the collaborators the viewer uses for
    pagination, search and the date filter. Both may be called from
    background threads.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        base_url: str,
        token: str,
        stream_id: str,
        *,
        per_page: int = 200,
        direction: str = "desc",
        start: str = "",
        end: str = "",
        filters: list[dict[str, Any]] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ) -> None:
        self.endpoint = (
            base_url.rstrip("/")
            + "/api/streams/"
            + urllib.parse.quote(stream_id.strip(), safe="")
            + "/logs"
        )
        self.timeout = timeout
        self.sess = requests.Session()
        self.sess.headers.update(
            {"Accept": "application/json", "Authorization": f"Bearer {token}"}
        )
        self.sess.verify = verify
        self.logger = logging.getLogger(__name__)

        self._base_params: dict[str, str] = {}
        if per_page > 0:
            self._base_params["limit"] = str(per_page)
        if direction:
            self._base_params["direction"] = direction
        self._filters = list(filters or [])
        self._bounds = self._bounds_params(start, end)

    @staticmethod
    def _bounds_params(start: str, end: str) -> dict[str, str]:
        params = {}
        for name, spec in (("start_time", start), ("end_time", end)):
            moment = resolve_time_spec(spec)
            if moment is not None:
                params[name] = str(to_epoch_millis(moment))
        return params

    def first_page(self) -> Page:
        """Query the first page with the initial bounds"""
        return self.fetch("", "")

    def fetch(self, cursor: str, query: str) -> Page:
        """Fetch a page; an empty cursor starts over, a query searches"""
        params = {**self._base_params, **self._bounds}
        if cursor:
            params["cursor"] = cursor
        filters = self._filters
        if query:
            filters = [*filters, {"field": "q", "value": query}]
        if filters:
            params["filters"] = json.dumps(filters, separators=(",", ":"))
        return self._get(params)

    def reload(self, start: str, end: str) -> Page:
        """Query the first page of a new date range.

        Later pages and searches keep using the new range once it loaded.
        """
        bounds = self._bounds_params(start, end)
        params = {**self._base_params, **bounds}
        if self._filters:
            params["filters"] = json.dumps(self._filters, separators=(",", ":"))
        page = self._get(params)
        self._bounds = bounds
        return page

    def _get(self, params: dict[str, str]) -> Page:
        self.logger.debug("Making request: %s %r", self.endpoint, params)
        try:
            r = self.sess.get(self.endpoint, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise ApiError("request timed out") from e
        except requests.RequestException as e:
            raise ApiError(f"request error: {e}") from e

        if not 200 <= r.status_code < 300:
            body = r.text.strip()
            message = f"request failed: {r.status_code} {r.reason}"
            raise ApiError(f"{message}\n{body}" if body else message)

        try:
            payload = r.json()
        except ValueError as e:
            raise ApiError(f"unable to parse response JSON: {e}") from e
        return parse_page(payload)


def parse_page(payload: Any) -> Page:
    """Build a page from a decoded response body"""
    if not isinstance(payload, dict):
        raise ApiError("unexpected response: not a JSON object")
    data = payload.get("data") or []
    meta = payload.get("meta") or {}
    if not isinstance(data, list) or not isinstance(meta, dict):
        raise ApiError("unexpected response: bad data or meta")

    total = meta.get("total")
    return Page(
        entries=tuple(EntryDocument(item) for item in data if isinstance(item, dict)),
        has_more=bool(meta.get("has_more")),
        total=total if isinstance(total, int) and not isinstance(total, bool) else None,
        next_cursor=meta.get("next_cursor") or "",
    )
