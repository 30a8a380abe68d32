"""
Low-code-platform adapter (Baserow).

Tables are addressed by numeric id, read from a JSON schema file that must be
supplied before the adapter can start. Rows use field names
(``user_field_names=true``) from the declarative Baserow mapping, which the
schema file may override per collection.

Baserow has no unique constraints and no conditional writes: the duplicate
email check, the last-superadmin guard and the submission transition are
read-then-write and can race under concurrent requests.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

from salesdesk.db.adapters.base import DEFAULT_ORDER, RowRepository
from salesdesk.db.adapters.http import json_or_none, send
from salesdesk.db.criteria import OP_EQ, eq, matches
from salesdesk.db.field_mapping import COLLECTIONS, FieldMapping, baserow_mapping
from salesdesk.errors import ConfigurationError, NotFound

logger = logging.getLogger(__name__)

# kind by logical collection name, as used in the schema file
_KIND_BY_COLLECTION = {collection: kind for kind, collection in COLLECTIONS.items()}


@dataclass(frozen=True)
class BaserowSchema:
    table_ids: Mapping[str, int]
    field_overrides: Mapping[str, Mapping[str, str]] = field(default_factory=dict)


def load_schema_file(path: Optional[str]) -> BaserowSchema:
    """Read table ids (and optional field-name overrides) keyed by collection.

    Example::

        {"tables": {"organizations": 101, "users": 102, ...},
         "fields": {"clients": {"name": "Nome completo"}}}
    """
    if not path:
        raise ConfigurationError("BASEROW_SCHEMA_FILE is not set")
    if not os.path.isfile(path):
        raise ConfigurationError(f"Baserow schema file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Unreadable Baserow schema file {path}: {exc}")

    tables = raw.get("tables") if isinstance(raw, dict) else None
    if not isinstance(tables, dict):
        raise ConfigurationError("Baserow schema file must contain a 'tables' object")
    missing = [c for c in COLLECTIONS.values() if not tables.get(c)]
    unknown = [c for c in tables if c not in _KIND_BY_COLLECTION]
    if missing or unknown:
        parts = []
        if missing:
            parts.append("missing table ids: " + ", ".join(missing))
        if unknown:
            parts.append("unknown collections: " + ", ".join(sorted(unknown)))
        raise ConfigurationError("Invalid Baserow schema file: " + "; ".join(parts))
    try:
        table_ids = {_KIND_BY_COLLECTION[c]: int(tid) for c, tid in tables.items()}
    except (TypeError, ValueError):
        raise ConfigurationError("Baserow table ids must be integers")

    overrides = {}
    for collection, names in (raw.get("fields") or {}).items():
        if collection not in _KIND_BY_COLLECTION or not isinstance(names, dict):
            raise ConfigurationError(f"Invalid field overrides for '{collection}'")
        overrides[_KIND_BY_COLLECTION[collection]] = dict(names)
    return BaserowSchema(table_ids=table_ids, field_overrides=overrides)


class BaserowClient:
    """Row API client for one Baserow workspace."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        page_size: int = 200,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Token {api_key}",
            "Content-Type": "application/json",
        })

    def _rows_url(self, table_id: int, row_id: Any = None) -> str:
        url = f"{self.base_url}/api/database/rows/table/{table_id}/"
        return url if row_id is None else f"{url}{row_id}/"

    def list_rows(self, table_id: int, filters: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """All rows matching the equality ``filters``, following pagination."""
        params: Dict[str, Any] = {"user_field_names": "true", "size": self.page_size}
        for name, value in (filters or {}).items():
            params[f"filter__{name}__equal"] = value
        rows: List[Dict[str, Any]] = []
        page = 1
        while True:
            params["page"] = page
            body = json_or_none(send(
                self.session, "GET", self._rows_url(table_id), str(table_id), self.timeout, params=params,
            )) or {}
            rows.extend(body.get("results") or [])
            if not body.get("next"):
                return rows
            page += 1

    def get_row(self, table_id: int, row_id: Any) -> Optional[Dict[str, Any]]:
        try:
            response = send(
                self.session, "GET", self._rows_url(table_id, row_id), str(table_id), self.timeout,
                params={"user_field_names": "true"},
            )
        except NotFound:
            return None
        return json_or_none(response)

    def create_row(self, table_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        response = send(
            self.session, "POST", self._rows_url(table_id), str(table_id), self.timeout,
            params={"user_field_names": "true"}, json=data,
        )
        return json_or_none(response) or {}

    def update_row(self, table_id: int, row_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = send(
                self.session, "PATCH", self._rows_url(table_id, row_id), str(table_id), self.timeout,
                params={"user_field_names": "true"}, json=data,
            )
        except NotFound:
            return None
        return json_or_none(response)

    def delete_row(self, table_id: int, row_id: Any) -> bool:
        try:
            send(self.session, "DELETE", self._rows_url(table_id, row_id), str(table_id), self.timeout)
        except NotFound:
            return False
        return True

    def close(self) -> None:
        self.session.close()


class BaserowRepository(RowRepository):
    backend = "baserow"

    def __init__(self, client: BaserowClient, schema: BaserowSchema, mapping: Optional[FieldMapping] = None):
        super().__init__(mapping or baserow_mapping(schema.field_overrides))
        self.client = client
        self.table_ids = dict(schema.table_ids)

    @classmethod
    def from_settings(cls, api_url: str, api_key: str, schema_file: str, timeout: float = 10.0) -> "BaserowRepository":
        schema = load_schema_file(schema_file)
        return cls(BaserowClient(api_url, api_key, timeout=timeout), schema)

    def close(self) -> None:
        self.client.close()

    def _uses_row_id(self, kind: str) -> bool:
        return self.mapping[kind].column("id") == "id"

    def _row_id(self, kind: str, record_id: Any) -> Optional[Any]:
        """Baserow's own row id for canonical ``record_id``."""
        if self._uses_row_id(kind):
            return record_id
        cmap = self.mapping[kind]
        rows = self.client.list_rows(self.table_ids[kind], {cmap.column("id"): record_id})
        rows = [r for r in rows if str(r.get(cmap.column("id"))) == str(record_id)]
        return rows[0]["id"] if rows else None

    def _fetch(self, kind, criteria=(), order_by=DEFAULT_ORDER):
        cmap = self.mapping[kind]
        table_id = self.table_ids[kind]
        single = [c for c in criteria if c.field == "id" and c.op == OP_EQ]
        if single and self._uses_row_id(kind):
            raw = self.client.get_row(table_id, single[0].value)
            rows = [cmap.from_storage(raw)] if raw else []
        else:
            # push plain equality down; everything is re-checked locally below
            pushed = {
                cmap.column(c.field): c.value
                for c in criteria
                if c.op == OP_EQ and c.value is not None and not isinstance(c.value, bool)
            }
            rows = [cmap.from_storage(r) for r in self.client.list_rows(table_id, pushed)]
        # ordering is applied by the shared base after validation
        return [r for r in rows if matches(r, criteria)]

    def _insert(self, kind, row):
        cmap = self.mapping[kind]
        created = self.client.create_row(self.table_ids[kind], cmap.to_storage(row))
        return cmap.from_storage(created)

    def _patch(self, kind, record_id, changes, guard=()):
        cmap = self.mapping[kind]
        if guard:
            current = self._fetch(kind, [eq("id", record_id), *guard])
            if not current:
                return None
        row_id = self._row_id(kind, record_id)
        if row_id is None:
            return None
        updated = self.client.update_row(self.table_ids[kind], row_id, cmap.to_storage(changes))
        return cmap.from_storage(updated) if updated is not None else None

    def _remove(self, kind, record_id):
        row_id = self._row_id(kind, record_id)
        if row_id is None:
            return False
        return self.client.delete_row(self.table_ids[kind], row_id)
