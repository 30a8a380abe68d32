"""
Relational-store adapter.

Issues SQLAlchemy Core statements with explicit predicates against the
tables declared in ``salesdesk.db.models``. Multi-step operations run in one
transaction, the last-superadmin guard is part of the DELETE statement and
the submission transition is a conditional UPDATE.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from salesdesk.db import models, schemas
from salesdesk.db.adapters.base import DEFAULT_ORDER, RowRepository
from salesdesk.db.criteria import OP_EQ, OP_IN, OP_NEQ, Criterion
from salesdesk.db.database import create_db_engine, init_schema, is_sqlite
from salesdesk.db.field_mapping import FieldMapping, sql_mapping
from salesdesk.errors import (
    BackendUnavailable,
    Conflict,
    ConflictReason,
)
from salesdesk.utils.role_permissions import ROLE_SUPERADMIN
from salesdesk.utils.scopes import (
    AGREEMENT,
    BANK,
    CLIENT,
    FORM_SUBMISSION,
    FORM_TEMPLATE,
    ORGANIZATION,
    PRODUCT,
    PROPOSAL,
    UNRESTRICTED,
    USER,
    scope_criteria,
)

logger = logging.getLogger(__name__)

TABLES = {
    ORGANIZATION: models.Organization.__table__,
    USER: models.User.__table__,
    CLIENT: models.Client.__table__,
    PRODUCT: models.Product.__table__,
    AGREEMENT: models.Convenio.__table__,
    BANK: models.Bank.__table__,
    PROPOSAL: models.Proposal.__table__,
    FORM_TEMPLATE: models.FormTemplate.__table__,
    FORM_SUBMISSION: models.FormSubmission.__table__,
}

_DETAIL_JOINS = {CLIENT: "client_id", PRODUCT: "product_id", AGREEMENT: "agreement_id", BANK: "bank_id"}


def _conflict_from(exc: IntegrityError) -> Conflict:
    text = str(getattr(exc, "orig", exc)).lower()
    if "email" in text and ("unique" in text or "duplicate" in text):
        return Conflict(ConflictReason.DUPLICATE_EMAIL, "Email is already registered")
    return Conflict(ConflictReason.HAS_DEPENDENTS, "Record is referenced by other records")


@contextmanager
def translate_errors():
    """Re-raise SQLAlchemy failures as typed repository outcomes."""
    try:
        yield
    except IntegrityError as exc:
        logger.warning("sql: integrity violation: %s", exc.orig.__class__.__name__)
        raise _conflict_from(exc) from None
    except (OperationalError, InterfaceError) as exc:
        logger.error("sql: database unavailable: %s", exc.__class__.__name__)
        raise BackendUnavailable() from None
    except DBAPIError as exc:
        logger.error("sql: database error: %s", exc.__class__.__name__)
        raise BackendUnavailable() from None


class SqlRepository(RowRepository):
    backend = "sql"

    def __init__(self, engine: Engine, mapping: Optional[FieldMapping] = None, create_schema: bool = False):
        super().__init__(mapping or sql_mapping())
        self.engine = engine
        self._local = threading.local()
        if create_schema:
            with translate_errors():
                init_schema(engine)

    @classmethod
    def from_url(cls, url: str) -> "SqlRepository":
        # SQLite has no migration history to rely on; build the tables directly
        return cls(create_db_engine(url), create_schema=is_sqlite(url))

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # connections
    # ------------------------------------------------------------------
    @contextmanager
    def _connection(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        with translate_errors():
            with self.engine.begin() as conn:
                yield conn

    @contextmanager
    def _unit(self):
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with translate_errors():
            with self.engine.begin() as conn:
                self._local.conn = conn
                try:
                    yield
                finally:
                    self._local.conn = None

    # ------------------------------------------------------------------
    # primitives
    # ------------------------------------------------------------------
    def _clauses(self, kind: str, criteria: Sequence[Criterion]) -> List[Any]:
        table = TABLES[kind]
        cmap = self.mapping[kind]
        clauses = []
        for c in criteria:
            col = table.c[cmap.column(c.field)]
            if c.op == OP_EQ:
                clauses.append(col.is_(None) if c.value is None else col == c.value)
            elif c.op == OP_NEQ:
                clauses.append(col.isnot(None) if c.value is None else or_(col.is_(None), col != c.value))
            elif c.op == OP_IN:
                clauses.append(col.in_(list(c.value)))
        return clauses

    def _where(self, stmt, kind: str, criteria: Sequence[Criterion]):
        clauses = self._clauses(kind, criteria)
        return stmt.where(and_(*clauses)) if clauses else stmt

    def _read_back(self, conn, kind: str, record_id: Any) -> Dict[str, Any]:
        table = TABLES[kind]
        raw = conn.execute(select(table).where(table.c.id == record_id)).mappings().one()
        return self.mapping[kind].from_storage(raw)

    def _fetch(self, kind, criteria=(), order_by=DEFAULT_ORDER):
        table = TABLES[kind]
        cmap = self.mapping[kind]
        stmt = self._where(select(table), kind, criteria)
        stmt = stmt.order_by(*[table.c[cmap.column(name)] for name in order_by])
        with self._connection() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [cmap.from_storage(r) for r in rows]

    def _count(self, kind, criteria=()):
        stmt = self._where(select(func.count()).select_from(TABLES[kind]), kind, criteria)
        with self._connection() as conn:
            return int(conn.execute(stmt).scalar_one())

    def _insert(self, kind, row):
        table = TABLES[kind]
        values = self.mapping[kind].to_storage(row)
        with self._connection() as conn:
            result = conn.execute(insert(table).values(**values))
            record_id = values.get("id", result.inserted_primary_key[0])
            return self._read_back(conn, kind, record_id)

    def _patch(self, kind, record_id, changes, guard=()):
        table = TABLES[kind]
        stmt = update(table).where(table.c.id == record_id)
        stmt = self._where(stmt, kind, guard).values(**self.mapping[kind].to_storage(changes))
        with self._connection() as conn:
            result = conn.execute(stmt)
            if result.rowcount == 0:
                return None
            return self._read_back(conn, kind, record_id)

    def _remove(self, kind, record_id):
        table = TABLES[kind]
        with self._connection() as conn:
            return conn.execute(delete(table).where(table.c.id == record_id)).rowcount > 0

    def _remove_where(self, kind, criteria):
        stmt = self._where(delete(TABLES[kind]), kind, criteria)
        with self._connection() as conn:
            return conn.execute(stmt).rowcount

    def _remove_superadmin(self, user_id):
        users = TABLES[USER]
        role = users.c[self.mapping[USER].column("role")]
        admins = select(func.count()).select_from(users).where(role == ROLE_SUPERADMIN).scalar_subquery()
        with self._connection() as conn:
            removed = conn.execute(delete(users).where(users.c.id == user_id, admins > 1)).rowcount
            if removed:
                return True
            still_there = conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
        if still_there is not None:
            raise Conflict(ConflictReason.LAST_ADMIN, "Cannot delete the last superadmin account")
        return False

    # ------------------------------------------------------------------
    # proposal detail view as one outer-joined query
    # ------------------------------------------------------------------
    def list_proposals_with_details(self, scope=UNRESTRICTED):
        where = scope_criteria(scope, PROPOSAL)
        proposals = TABLES[PROPOSAL]
        pmap = self.mapping[PROPOSAL]
        columns = [col.label(f"{PROPOSAL}__{col.name}") for col in proposals.c]
        joined = proposals
        for kind, fk in _DETAIL_JOINS.items():
            table = TABLES[kind]
            columns += [col.label(f"{kind}__{col.name}") for col in table.c]
            joined = joined.outerjoin(table, proposals.c[pmap.column(fk)] == table.c.id)
        stmt = self._where(select(*columns).select_from(joined), PROPOSAL, where).order_by(proposals.c.id)
        with self._connection() as conn:
            rows = conn.execute(stmt).mappings().all()

        results = []
        for row in rows:
            parts: Dict[str, Dict[str, Any]] = {}
            for key, value in row.items():
                prefix, _, column = key.partition("__")
                parts.setdefault(prefix, {})[column] = value
            proposal = self._entity(PROPOSAL, pmap.from_storage(parts[PROPOSAL]))
            details = {}
            for kind in _DETAIL_JOINS:
                raw: Mapping[str, Any] = parts.get(kind, {})
                details[kind] = (
                    None if raw.get("id") is None else self._entity(kind, self.mapping[kind].from_storage(raw))
                )
            results.append(schemas.ProposalWithDetails.model_validate({**proposal.model_dump(), **details}))
        return results
