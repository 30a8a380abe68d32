"""
First-run seeding of reference data, the default organization and the
initial superadmin account.

Every step checks what already exists and skips when it is seeded, so the
bootstrap can run on every startup.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from salesdesk.db.repository import Repository
from salesdesk.utils.passwords import hash_password
from salesdesk.utils.role_permissions import ROLE_SUPERADMIN, UserSector
from salesdesk.utils.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS = [
    {"name": "Novo empréstimo", "price": "R$ 1.000,00", "description": "Novo contrato de empréstimo"},
    {"name": "Refinanciamento", "price": "R$ 5.000,00", "description": "Refinanciamento de contrato existente"},
    {"name": "Portabilidade", "price": "R$ 2.000,00", "description": "Transferência de contrato entre instituições"},
    {"name": "Cartão de Crédito", "price": "R$ 500,00", "description": "Emissão de novo cartão de crédito"},
    {"name": "Saque FGTS", "price": "R$ 1.200,00", "description": "Antecipação do saque aniversário do FGTS"},
]

DEFAULT_AGREEMENTS = [
    {
        "name": "Beneficiário do INSS",
        "price": "R$ 3.000,00",
        "description": "Convênio para aposentados e pensionistas do INSS",
    },
    {"name": "Servidor Público", "price": "R$ 5.000,00", "description": "Convênio para servidores públicos"},
    {"name": "LOAS/BPC", "price": "R$ 1.500,00", "description": "Convênio para beneficiários do LOAS/BPC"},
    {
        "name": "Carteira assinada CLT",
        "price": "R$ 4.000,00",
        "description": "Convênio para trabalhadores com carteira assinada",
    },
]

DEFAULT_BANKS = [
    {"name": "BANRISUL", "price": "R$ 2.500,00"},
    {"name": "BMG", "price": "R$ 3.000,00"},
    {"name": "C6 BANK", "price": "R$ 1.800,00"},
    {"name": "CAIXA ECONÔMICA FEDERAL", "price": "R$ 2.000,00"},
    {"name": "ITAÚ", "price": "R$ 4.500,00"},
    {"name": "SAFRA", "price": "R$ 2.800,00"},
    {"name": "SANTANDER", "price": "R$ 3.200,00"},
    {"name": "BRADESCO", "price": "R$ 3.500,00"},
    {"name": "BANCO DO BRASIL", "price": "R$ 3.000,00"},
    {"name": "NUBANK", "price": "R$ 1.500,00"},
]

DEFAULT_ORGANIZATION = {
    "name": "Organização Padrão",
    "cnpj": "12.345.678/0001-90",
    "address": "Avenida Presidente Vargas, 1000",
    "phone": "(71) 3333-4444",
    "email": "contato@organizacaopadrao.com",
    "website": "www.organizacaopadrao.com",
    "logo": "https://placehold.co/100x100",
}

ADMIN_NAME = "Administrador"


@dataclass
class BootstrapReport:
    seeded: Dict[str, int] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(self.seeded.values())


def _seed_reference(label: str, lister, creator, rows, report: BootstrapReport) -> None:
    if lister():
        report.skipped.append(label)
        return
    for row in rows:
        creator(dict(row))
    report.seeded[label] = len(rows)
    logger.info("Seeded %d default %s", len(rows), label)


def bootstrap(repo: Repository, settings: Settings) -> BootstrapReport:
    """Seed whatever is missing; safe to call on every startup."""
    report = BootstrapReport()
    _seed_reference("products", repo.list_products, repo.create_product, DEFAULT_PRODUCTS, report)
    _seed_reference("agreements", repo.list_agreements, repo.create_agreement, DEFAULT_AGREEMENTS, report)
    _seed_reference("banks", repo.list_banks, repo.create_bank, DEFAULT_BANKS, report)

    organizations = repo.list_organizations()
    if organizations:
        organization = organizations[0]
        report.skipped.append("organizations")
    else:
        organization = repo.create_organization(dict(DEFAULT_ORGANIZATION))
        report.seeded["organizations"] = 1
        logger.info("Created default organization %s", organization.id)

    if any(u.role == ROLE_SUPERADMIN for u in repo.list_users()):
        report.skipped.append("superadmin")
        return report
    if repo.get_user_by_email(settings.bootstrap_admin_email) is not None:
        logger.warning(
            "No superadmin exists but %s is taken by another account; not creating one",
            settings.bootstrap_admin_email,
        )
        report.skipped.append("superadmin")
        return report

    repo.create_user({
        "name": ADMIN_NAME,
        "email": settings.bootstrap_admin_email,
        "password_hash": hash_password(settings.bootstrap_admin_password),
        "role": ROLE_SUPERADMIN,
        "sector": UserSector.commercial.value,
        "organization_id": organization.id,
    })
    report.seeded["superadmin"] = 1
    logger.info("Created initial superadmin %s", settings.bootstrap_admin_email)
    if settings.uses_default_admin_password:
        logger.warning(
            "The initial superadmin uses the default bootstrap password; "
            "change it before exposing this deployment"
        )
    return report
