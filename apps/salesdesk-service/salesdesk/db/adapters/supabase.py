"""
Backend-as-a-service adapter (Supabase PostgREST).

Every primitive is one REST call with PostgREST filter parameters
(``col=eq.value``, ``col=in.(a,b)``). The proposal detail view is assembled
in memory by the shared base: one ``in.(...)`` request per related
collection over the distinct foreign ids.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from salesdesk.db.adapters.base import DEFAULT_ORDER, RowRepository
from salesdesk.db.adapters.http import json_or_none, send
from salesdesk.db.criteria import OP_EQ, OP_IN, OP_NEQ, Criterion
from salesdesk.db.field_mapping import CollectionMap, FieldMapping, supabase_mapping
from salesdesk.errors import BackendUnavailable

logger = logging.getLogger(__name__)

Filter = Tuple[str, str]

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


def _literal(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value)
    if isinstance(value, str):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def to_filters(cmap: CollectionMap, criteria: Sequence[Criterion]) -> List[Filter]:
    """Translate criteria into PostgREST query parameters."""
    params: List[Filter] = []
    for c in criteria:
        column = cmap.column(c.field)
        if c.op == OP_EQ:
            params.append((column, "is.null" if c.value is None else f"eq.{_literal(c.value)}"))
        elif c.op == OP_NEQ:
            if c.value is None:
                params.append((column, "not.is.null"))
            else:
                params.append(("or", f"({column}.is.null,{column}.neq.{_literal(c.value)})"))
        elif c.op == OP_IN:
            params.append((column, "in.(" + ",".join(_quoted(v) for v in c.value) + ")"))
    return params


class PostgrestClient:
    """Thin PostgREST client over a ``requests.Session``."""

    def __init__(self, base_url: str, api_key: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def select(self, table: str, filters: Sequence[Filter] = (), order: Sequence[str] = ()) -> List[Dict[str, Any]]:
        params: List[Filter] = [("select", "*"), *filters]
        if order:
            params.append(("order", ",".join(f"{column}.asc" for column in order)))
        response = send(self.session, "GET", self._url(table), table, self.timeout, params=params)
        return json_or_none(response) or []

    def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        params: List[Filter] = [("select", "id"), *filters]
        headers = {"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"}
        response = send(self.session, "GET", self._url(table), table, self.timeout, params=params, headers=headers)
        match = _CONTENT_RANGE_TOTAL.search(response.headers.get("Content-Range", ""))
        if match is None:
            logger.error("%s: count response without Content-Range", table)
            raise BackendUnavailable()
        return int(match.group(1))

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        headers = {"Prefer": "return=representation"}
        response = send(self.session, "POST", self._url(table), table, self.timeout, json=row, headers=headers)
        return json_or_none(response) or []

    def update(self, table: str, filters: Sequence[Filter], changes: Dict[str, Any]) -> List[Dict[str, Any]]:
        headers = {"Prefer": "return=representation"}
        response = send(
            self.session, "PATCH", self._url(table), table, self.timeout,
            params=list(filters), json=changes, headers=headers,
        )
        return json_or_none(response) or []

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        headers = {"Prefer": "return=representation"}
        response = send(self.session, "DELETE", self._url(table), table, self.timeout, params=list(filters), headers=headers)
        return json_or_none(response) or []

    def recover(self, email: str) -> None:
        """Start the platform's password recovery flow for ``email``."""
        send(self.session, "POST", f"{self.base_url}/auth/v1/recover", "auth", self.timeout, json={"email": email})

    def close(self) -> None:
        self.session.close()


class SupabaseRepository(RowRepository):
    backend = "supabase"

    def __init__(self, client: PostgrestClient, mapping: Optional[FieldMapping] = None):
        super().__init__(mapping or supabase_mapping())
        self.client = client

    @classmethod
    def from_settings(cls, url: str, service_key: str, timeout: float = 10.0) -> "SupabaseRepository":
        return cls(PostgrestClient(url, service_key, timeout=timeout))

    def close(self) -> None:
        self.client.close()

    def request_password_recovery(self, email: str) -> bool:
        self.client.recover(email)
        return True

    def _id_filter(self, kind: str, record_id: Any) -> Filter:
        return (self.mapping[kind].column("id"), f"eq.{record_id}")

    def _fetch(self, kind, criteria=(), order_by=DEFAULT_ORDER):
        cmap = self.mapping[kind]
        raw = self.client.select(cmap.collection, to_filters(cmap, criteria), [cmap.column(n) for n in order_by])
        return [cmap.from_storage(r) for r in raw]

    def _count(self, kind, criteria=()):
        cmap = self.mapping[kind]
        return self.client.count(cmap.collection, to_filters(cmap, criteria))

    def _insert(self, kind, row):
        cmap = self.mapping[kind]
        created = self.client.insert(cmap.collection, cmap.to_storage(row))
        if not created:
            logger.error("%s: insert returned no representation", cmap.collection)
            raise BackendUnavailable()
        return cmap.from_storage(created[0])

    def _patch(self, kind, record_id, changes, guard=()):
        cmap = self.mapping[kind]
        filters = [self._id_filter(kind, record_id), *to_filters(cmap, guard)]
        updated = self.client.update(cmap.collection, filters, cmap.to_storage(changes))
        return cmap.from_storage(updated[0]) if updated else None

    def _remove(self, kind, record_id):
        cmap = self.mapping[kind]
        return bool(self.client.delete(cmap.collection, [self._id_filter(kind, record_id)]))

    def _remove_where(self, kind, criteria):
        cmap = self.mapping[kind]
        return len(self.client.delete(cmap.collection, to_filters(cmap, criteria)))
