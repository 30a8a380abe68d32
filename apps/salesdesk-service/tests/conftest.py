import itertools
import threading
from types import SimpleNamespace

import pytest

from salesdesk.api.permissions import Actor
from salesdesk.db.adapters.baserow import BaserowRepository, BaserowSchema
from salesdesk.db.adapters.sql import SqlRepository
from salesdesk.db.adapters.supabase import SupabaseRepository
from salesdesk.db.database import create_db_engine
from salesdesk.db.field_mapping import COLLECTIONS
from salesdesk.utils.passwords import hash_password
from salesdesk.utils.settings import Settings, refresh_settings_cache

TEST_PASSWORD = "correct-horse"
TEST_SECRET = "test-session-secret"


@pytest.fixture(autouse=True)
def _fresh_settings():
    refresh_settings_cache()
    yield
    refresh_settings_cache()


# ----------------------------------------------------------------------
# In-memory stand-ins for the REST clients the adapters talk to
# ----------------------------------------------------------------------
def _as_text(value):
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def _in_values(expr):
    inner = expr[len("in.("):-1]
    return [v.strip().strip('"') for v in inner.split(",") if v.strip()]


def _postgrest_match(row, column, expr):
    value = row.get(column)
    if expr == "is.null":
        return value is None
    if expr == "not.is.null":
        return value is not None
    if expr.startswith("eq."):
        return value is not None and _as_text(value) == expr[3:]
    if expr.startswith("in."):
        return value is not None and _as_text(value) in _in_values(expr)
    raise AssertionError(f"unsupported filter {column}={expr}")


def _postgrest_or(row, expr):
    # only the "(col.is.null,col.neq.value)" form is produced by the adapter
    first, second = expr.strip("()").split(",", 1)
    column = first.split(".", 1)[0]
    value = row.get(column)
    neq = second.split(".neq.", 1)[1]
    return value is None or _as_text(value) != neq


class FakePostgrestClient:
    """Serves the PostgrestClient surface from dicts keyed by table name."""

    def __init__(self):
        self.tables = {name: [] for name in COLLECTIONS.values()}
        self.ids = itertools.count(1)
        self.recovered = []
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def _matching(self, table, filters):
        rows = []
        for row in self.tables[table]:
            ok = True
            for column, expr in filters:
                if column == "or":
                    ok = _postgrest_or(row, expr)
                else:
                    ok = _postgrest_match(row, column, expr)
                if not ok:
                    break
            if ok:
                rows.append(row)
        return rows

    def select(self, table, filters=(), order=()):
        self.calls.append(("select", table, list(filters)))
        with self._lock:
            rows = [dict(r) for r in self._matching(table, filters)]
        for column in reversed(list(order)):
            rows.sort(key=lambda r: (r.get(column) is None, str(r.get(column)) if column != "id" else r.get(column)))
        return rows

    def count(self, table, filters=()):
        with self._lock:
            return len(self._matching(table, filters))

    def insert(self, table, row):
        with self._lock:
            stored = dict(row)
            if stored.get("id") is None:
                stored["id"] = next(self.ids)
            self.tables[table].append(stored)
            return [dict(stored)]

    def update(self, table, filters, changes):
        with self._lock:
            rows = self._matching(table, filters)
            for row in rows:
                row.update(changes)
            return [dict(r) for r in rows]

    def delete(self, table, filters):
        with self._lock:
            rows = self._matching(table, filters)
            self.tables[table] = [r for r in self.tables[table] if r not in rows]
            return [dict(r) for r in rows]

    def recover(self, email):
        self.recovered.append(email)

    def close(self):
        self.closed = True


class FakeBaserowClient:
    """Serves the BaserowClient surface from dicts keyed by table id."""

    def __init__(self, table_ids):
        self.rows = {table_id: {} for table_id in table_ids}
        self.ids = itertools.count(1)
        self.closed = False
        self._lock = threading.Lock()

    def list_rows(self, table_id, filters=None):
        with self._lock:
            rows = [dict(r) for _, r in sorted(self.rows[table_id].items())]
        for name, value in (filters or {}).items():
            rows = [r for r in rows if r.get(name) is not None and str(r.get(name)) == str(value)]
        return rows

    def get_row(self, table_id, row_id):
        try:
            key = int(row_id)
        except (TypeError, ValueError):
            return None
        row = self.rows[table_id].get(key)
        return dict(row) if row is not None else None

    def create_row(self, table_id, data):
        with self._lock:
            row_id = next(self.ids)
            row = {**data, "id": row_id}
            self.rows[table_id][row_id] = row
            return dict(row)

    def update_row(self, table_id, row_id, data):
        with self._lock:
            row = self.rows[table_id].get(int(row_id))
            if row is None:
                return None
            row.update(data)
            return dict(row)

    def delete_row(self, table_id, row_id):
        with self._lock:
            return self.rows[table_id].pop(int(row_id), None) is not None

    def close(self):
        self.closed = True


BASEROW_TABLE_IDS = {kind: 100 + n for n, kind in enumerate(sorted(COLLECTIONS))}


# ----------------------------------------------------------------------
# Repositories
# ----------------------------------------------------------------------
def make_sql_repository():
    return SqlRepository(create_db_engine("sqlite:///:memory:"), create_schema=True)


def make_supabase_repository():
    return SupabaseRepository(FakePostgrestClient())


def make_baserow_repository():
    schema = BaserowSchema(table_ids=dict(BASEROW_TABLE_IDS))
    return BaserowRepository(FakeBaserowClient(BASEROW_TABLE_IDS.values()), schema)


REPOSITORY_FACTORIES = {
    "sql": make_sql_repository,
    "supabase": make_supabase_repository,
    "baserow": make_baserow_repository,
}


@pytest.fixture(params=sorted(REPOSITORY_FACTORIES))
def repo(request):
    """Each test using this fixture runs once per storage backend."""
    repository = REPOSITORY_FACTORIES[request.param]()
    yield repository
    repository.close()


@pytest.fixture
def sql_repo():
    repository = make_sql_repository()
    yield repository
    repository.close()


@pytest.fixture(scope="session")
def plain_password():
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def settings():
    return Settings(
        storage_backend="sql",
        database_url="sqlite:///:memory:",
        session_secret=TEST_SECRET,
        session_ttl_hours=1,
        bootstrap_admin_email="root@salesdesk.test",
        bootstrap_admin_password="Bootstrap-Pass-1",
    )


# ----------------------------------------------------------------------
# Two tenants with a manager and agents each, plus a superadmin
# ----------------------------------------------------------------------
def seed_tenants(repository, password_hash):
    org_a = repository.create_organization({"name": "Alfa Crédito"})
    org_b = repository.create_organization({"name": "Beta Promotora"})

    def user(name, email, role, org):
        return repository.create_user({
            "name": name,
            "email": email,
            "role": role,
            "sector": "Comercial",
            "organization_id": org.id if org else None,
            "password_hash": password_hash,
        })

    admin = user("Root", "root@example.com", "superadmin", None)
    manager_a = user("Marta", "marta@alfa.com", "manager", org_a)
    agent_a1 = user("Ana", "ana@alfa.com", "agent", org_a)
    agent_a2 = user("Alan", "alan@alfa.com", "agent", org_a)
    manager_b = user("Bruno", "bruno@beta.com", "manager", org_b)
    agent_b = user("Bia", "bia@beta.com", "agent", org_b)

    product = repository.create_product({"name": "Novo empréstimo", "price": "R$ 1.000,00"})
    agreement = repository.create_agreement({"name": "Beneficiário do INSS", "price": "R$ 3.000,00"})
    bank = repository.create_bank({"name": "BMG", "price": "R$ 3.000,00"})

    users = SimpleNamespace(
        admin=admin, manager_a=manager_a, agent_a1=agent_a1, agent_a2=agent_a2,
        manager_b=manager_b, agent_b=agent_b,
    )
    actors = SimpleNamespace(**{name: Actor.from_user(u) for name, u in vars(users).items()})
    return SimpleNamespace(
        org_a=org_a, org_b=org_b, users=users, actors=actors,
        product=product, agreement=agreement, bank=bank,
    )


@pytest.fixture
def tenants(repo, password_hash):
    return seed_tenants(repo, password_hash)


@pytest.fixture
def sql_tenants(sql_repo, password_hash):
    return seed_tenants(sql_repo, password_hash)

