"""
Declarative name mapping between the entity model and each storage backend.

Every adapter owns one ``FieldMapping``: per collection, the storage name of
every canonical field. Mappings are checked against the Pydantic read models
when an adapter is built, so a field cannot be silently dropped on the way to
or from storage.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional, Type

from pydantic import BaseModel

from salesdesk.db import schemas
from salesdesk.errors import BackendUnavailable, ConfigurationError
from salesdesk.utils import scopes

logger = logging.getLogger(__name__)

# Storage collection per entity kind (logical layout shared by all backends)
COLLECTIONS: Dict[str, str] = {
    scopes.ORGANIZATION: "organizations",
    scopes.USER: "users",
    scopes.CLIENT: "clients",
    scopes.PRODUCT: "products",
    scopes.AGREEMENT: "convenios",
    scopes.BANK: "banks",
    scopes.PROPOSAL: "proposals",
    scopes.FORM_TEMPLATE: "form_templates",
    scopes.FORM_SUBMISSION: "form_submissions",
}

ENTITY_MODELS: Dict[str, Type[BaseModel]] = {
    scopes.ORGANIZATION: schemas.Organization,
    scopes.USER: schemas.User,
    scopes.CLIENT: schemas.Client,
    scopes.PRODUCT: schemas.Product,
    scopes.AGREEMENT: schemas.Agreement,
    scopes.BANK: schemas.Bank,
    scopes.PROPOSAL: schemas.Proposal,
    scopes.FORM_TEMPLATE: schemas.FormTemplate,
    scopes.FORM_SUBMISSION: schemas.FormSubmission,
}

JSON_FIELDS: Dict[str, FrozenSet[str]] = {
    scopes.FORM_TEMPLATE: frozenset({"fields"}),
    scopes.FORM_SUBMISSION: frozenset({"data"}),
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


@dataclass(frozen=True)
class CollectionMap:
    kind: str
    collection: str
    fields: Mapping[str, str]
    # canonical fields persisted as JSON text rather than native JSON
    json_text_fields: FrozenSet[str] = frozenset()
    # render datetimes as ISO strings on write (REST backends)
    iso_timestamps: bool = False

    def column(self, canonical: str) -> str:
        try:
            return self.fields[canonical]
        except KeyError:
            raise KeyError(f"{self.kind} has no field '{canonical}'")

    def to_storage(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name, value in row.items():
            if name in self.json_text_fields and value is not None:
                value = json.dumps(value)
            elif self.iso_timestamps:
                value = _jsonable(value)
            out[self.column(name)] = value
        return out

    def from_storage(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name, column in self.fields.items():
            if column not in raw:
                continue
            value = raw[column]
            if name in self.json_text_fields and isinstance(value, str):
                value = self._decode_json(name, value)
            out[name] = value
        return out

    def _decode_json(self, name: str, text: str) -> Any:
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.error("%s.%s: stored value is not valid JSON (%s chars)", self.kind, name, len(text))
            raise BackendUnavailable() from None


@dataclass(frozen=True)
class FieldMapping:
    backend: str
    collections: Mapping[str, CollectionMap] = field(default_factory=dict)

    def __getitem__(self, kind: str) -> CollectionMap:
        return self.collections[kind]

    def validate(self) -> None:
        """Raise ConfigurationError unless every entity field maps to one distinct column."""
        problems = []
        for kind, model in ENTITY_MODELS.items():
            cmap = self.collections.get(kind)
            if cmap is None:
                problems.append(f"{kind}: no collection mapping")
                continue
            expected = set(model.model_fields)
            mapped = set(cmap.fields)
            for name in sorted(expected - mapped):
                problems.append(f"{kind}.{name}: unmapped")
            for name in sorted(mapped - expected):
                problems.append(f"{kind}.{name}: not an entity field")
            columns = list(cmap.fields.values())
            dupes = sorted({c for c in columns if columns.count(c) > 1})
            for c in dupes:
                problems.append(f"{kind}: column '{c}' mapped twice")
        if problems:
            raise ConfigurationError(f"Invalid {self.backend} field mapping: " + "; ".join(problems))


def build_mapping(
    backend: str,
    renames: Optional[Mapping[str, Mapping[str, str]]] = None,
    collections: Optional[Mapping[str, str]] = None,
    json_as_text: bool = False,
    iso_timestamps: bool = False,
) -> FieldMapping:
    """Identity mapping for every entity field, with per-kind ``renames`` applied."""
    renames = renames or {}
    collections = collections or {}
    maps = {}
    for kind, model in ENTITY_MODELS.items():
        fields = {name: name for name in model.model_fields}
        fields.update(renames.get(kind, {}))
        maps[kind] = CollectionMap(
            kind=kind,
            collection=collections.get(kind, COLLECTIONS[kind]),
            fields=fields,
            json_text_fields=JSON_FIELDS.get(kind, frozenset()) if json_as_text else frozenset(),
            iso_timestamps=iso_timestamps,
        )
    mapping = FieldMapping(backend=backend, collections=maps)
    mapping.validate()
    return mapping


_AGREEMENT_FK = {"agreement_id": "convenio_id"}

SQL_RENAMES = {
    scopes.USER: {"password_hash": "password"},
    scopes.CLIENT: _AGREEMENT_FK,
    scopes.PROPOSAL: _AGREEMENT_FK,
}

SUPABASE_RENAMES = {
    scopes.ORGANIZATION: {"logo": "logo_url"},
    scopes.USER: {"password_hash": "password"},
    scopes.CLIENT: _AGREEMENT_FK,
    scopes.PROPOSAL: _AGREEMENT_FK,
    scopes.FORM_SUBMISSION: {"data": "form_data"},
}

BASEROW_COLLECTIONS = {
    scopes.ORGANIZATION: "organizacoes",
    scopes.USER: "usuarios",
    scopes.CLIENT: "clientes",
    scopes.PRODUCT: "produtos",
    scopes.AGREEMENT: "convenios",
    scopes.BANK: "bancos",
    scopes.PROPOSAL: "propostas",
    scopes.FORM_TEMPLATE: "modelos_formulario",
    scopes.FORM_SUBMISSION: "envios_formulario",
}

_BASEROW_REFERENCE = {"name": "nome", "price": "preco", "description": "descricao"}

BASEROW_RENAMES = {
    scopes.ORGANIZATION: {
        "name": "nome", "address": "endereco", "phone": "telefone", "website": "site",
        "description": "descricao", "created_at": "data_criacao",
    },
    scopes.USER: {
        # Baserow row ids are integers; the account id lives in a text field
        "id": "uuid", "name": "nome", "password_hash": "senha", "role": "papel",
        "sector": "setor", "phone": "telefone", "organization_id": "organizacao_id",
        "created_at": "data_criacao", "updated_at": "data_atualizacao",
    },
    scopes.CLIENT: {
        "name": "nome", "phone": "telefone", "birth_date": "data_nascimento",
        "company": "empresa", "contact": "contato", "agreement_id": "convenio_id",
        "created_by_id": "criador_id", "organization_id": "organizacao_id",
        "created_at": "data_criacao",
    },
    scopes.PRODUCT: _BASEROW_REFERENCE,
    scopes.AGREEMENT: _BASEROW_REFERENCE,
    scopes.BANK: _BASEROW_REFERENCE,
    scopes.PROPOSAL: {
        "client_id": "cliente_id", "product_id": "produto_id", "agreement_id": "convenio_id",
        "bank_id": "banco_id", "value": "valor", "comments": "observacoes",
        "created_by_id": "criador_id", "organization_id": "organizacao_id",
        "created_at": "data_criacao",
    },
    scopes.FORM_TEMPLATE: {
        "name": "nome", "description": "descricao", "fields": "campos", "active": "ativo",
        "created_by_id": "criador_id", "organization_id": "organizacao_id",
        "created_at": "data_criacao", "updated_at": "data_atualizacao",
    },
    scopes.FORM_SUBMISSION: {
        "form_template_id": "modelo_id", "data": "dados", "client_id": "cliente_id",
        "organization_id": "organizacao_id", "processed_by_id": "processado_por_id",
        "processed_at": "processado_em", "created_at": "data_criacao",
        "updated_at": "data_atualizacao",
    },
}


def sql_mapping() -> FieldMapping:
    return build_mapping("sql", SQL_RENAMES)


def supabase_mapping() -> FieldMapping:
    return build_mapping("supabase", SUPABASE_RENAMES, iso_timestamps=True)


def baserow_mapping(overrides: Optional[Mapping[str, Mapping[str, str]]] = None) -> FieldMapping:
    """Baserow mapping; ``overrides`` replaces field names per kind from the schema file."""
    renames = {kind: dict(names) for kind, names in BASEROW_RENAMES.items()}
    for kind, names in (overrides or {}).items():
        renames.setdefault(kind, {}).update(names)
    return build_mapping(
        "baserow", renames, BASEROW_COLLECTIONS, json_as_text=True, iso_timestamps=True,
    )
