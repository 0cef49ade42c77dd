"""
Storage backed by a Supabase / PostgREST endpoint over HTTP.
"""

import json
import logging
from contextlib import contextmanager
from typing import Optional

import requests

from .config import STORAGE_TIMEOUT
from .errors import StorageError

logger = logging.getLogger(__name__)


def _literal(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_filter_params(filters: Optional[dict]) -> dict:
    """Turn a Storage filter dict into PostgREST query parameters."""
    params = {}
    ranges = []
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, tuple):
            op, operand = value
            if op == "in":
                params[column] = "in.(" + ",".join(_literal(v) for v in operand) + ")"
            elif op in ("gte", "lte"):
                params[column] = f"{op}.{_literal(operand)}"
            elif op == "between":
                # and=(day.gte.a,day.lte.b)
                low, high = operand
                ranges += [f"{column}.gte.{_literal(low)}", f"{column}.lte.{_literal(high)}"]
            else:
                raise StorageError(f"Unsupported filter operator: {op}")
        else:
            params[column] = f"eq.{_literal(value)}"
    if ranges:
        params["and"] = "(" + ",".join(ranges) + ")"
    return params


class PostgrestStorage:
    """Talks to <url>/rest/v1/<table> with the anon/service key."""

    def __init__(self, url: str, api_key: str, session: Optional[requests.Session] = None,
                 timeout: int = STORAGE_TIMEOUT):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, table: str, params: Optional[dict] = None,
                 payload=None, prefer: Optional[str] = None):
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self.session.request(
                method,
                f"{self.base_url}/{table}",
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f"Storage request failed: {e}") from e

        if resp.status_code >= 400:
            try:
                detail = json.dumps(resp.json())
            except ValueError:
                detail = resp.text
            logger.error("%s %s -> %s: %s", method, table, resp.status_code, detail)
            raise StorageError(f"Storage error {resp.status_code}: {detail}")

        if resp.status_code == 204 or not resp.content:
            return []
        try:
            return resp.json()
        except ValueError as e:
            raise StorageError(f"Failed to parse storage response: {e}") from e

    @contextmanager
    def transaction(self):
        # PostgREST has no multi-request transactions; writes land one by one.
        yield self

    def select(self, table: str, filters: Optional[dict] = None,
               order_by: Optional[str] = None) -> list[dict]:
        params = {"select": "*", **build_filter_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.asc"
        return self._request("GET", table, params=params)

    def insert(self, table: str, values: dict) -> dict:
        rows = self._request("POST", table, payload=[values], prefer="return=representation")
        if not rows:
            raise StorageError(f"Insert into {table} returned no row")
        return rows[0]

    def update(self, table: str, filters: dict, values: dict) -> list[dict]:
        return self._request(
            "PATCH", table,
            params=build_filter_params(filters),
            payload=values,
            prefer="return=representation",
        )

    def delete(self, table: str, filters: dict) -> int:
        rows = self._request(
            "DELETE", table,
            params=build_filter_params(filters),
            prefer="return=representation",
        )
        return len(rows)

    def upsert(self, table: str, values: dict, key: str) -> dict:
        rows = self._request(
            "POST", table,
            params={"on_conflict": key},
            payload=[values],
            prefer="resolution=merge-duplicates,return=representation",
        )
        if not rows:
            raise StorageError(f"Upsert into {table} returned no row")
        return rows[0]
