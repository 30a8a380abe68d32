"""
Dashboard reporting over the actor's visible clients and proposals.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from salesdesk.api.permissions import Actor, Operation, decide, ensure_role
from salesdesk.db import schemas
from salesdesk.db.repository import Repository
from salesdesk.utils.currency import format_brl, parse_currency
from salesdesk.utils.role_permissions import ROLE_MANAGER, ROLE_SUPERADMIN
from salesdesk.utils.scopes import CLIENT, ORGANIZATION, PROPOSAL, USER, raise_if_denied

RECENT_ACTIVITY_LIMIT = 5


def _scope(actor: Actor, kind: str):
    scope = decide(actor, kind, Operation.LIST)
    raise_if_denied(scope)
    return scope


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class DashboardService:
    def __init__(self, repository: Repository):
        self.repo = repository

    def stats(self, actor: Actor) -> Dict[str, Any]:
        clients = self.repo.list_clients(_scope(actor, CLIENT))
        proposals = self.repo.list_proposals(_scope(actor, PROPOSAL))
        accepted = sum(1 for p in proposals if p.status == schemas.ProposalStatus.accepted.value)
        total_value = sum((parse_currency(p.value) or Decimal(0) for p in proposals), Decimal(0))
        return {
            "total_clients": len(clients),
            "active_proposals": sum(1 for p in proposals if p.status != schemas.ProposalStatus.declined.value),
            "conversion_rate": round(accepted * 100 / len(proposals)) if proposals else 0,
            "total_value": str(total_value),
            "total_value_display": format_brl(total_value),
        }

    def proposals_by_status(self, actor: Actor) -> Dict[str, int]:
        counts = {status: 0 for status in schemas.PROPOSAL_STATUSES}
        for proposal in self.repo.list_proposals(_scope(actor, PROPOSAL)):
            if proposal.status in counts:
                counts[proposal.status] += 1
        return counts

    def recent_activity(self, actor: Actor, limit: int = RECENT_ACTIVITY_LIMIT) -> List[schemas.ProposalWithDetails]:
        """Most recently created proposals first."""
        proposals = self.repo.list_proposals_with_details(_scope(actor, PROPOSAL))
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        proposals.sort(key=lambda p: (_aware(p.created_at) or epoch, p.id), reverse=True)
        return proposals[:limit]

    def operator_activity(self, actor: Actor) -> List[Dict[str, Any]]:
        """Per-user client and proposal counts; managers and superadmins only."""
        ensure_role(actor, ROLE_MANAGER, ROLE_SUPERADMIN)
        users = self.repo.list_users(_scope(actor, USER))
        organizations = {o.id: o for o in self.repo.list_organizations(_scope(actor, ORGANIZATION))}
        clients = self.repo.list_clients(_scope(actor, CLIENT))
        proposals = self.repo.list_proposals(_scope(actor, PROPOSAL))

        rows = []
        for user in users:
            own_clients = [c for c in clients if c.created_by_id == user.id]
            own_proposals = [p for p in proposals if p.created_by_id == user.id]
            stamps = [_aware(r.created_at) for r in [*own_clients, *own_proposals] if r.created_at is not None]
            organization = organizations.get(user.organization_id)
            rows.append({
                "user_id": user.id,
                "user_name": user.name,
                "user_email": user.email,
                "user_role": user.role,
                "sector": user.sector,
                "organization_id": user.organization_id,
                "organization_name": organization.name if organization else "Sem organização",
                "clients_count": len(own_clients),
                "proposals_count": len(own_proposals),
                "last_activity": max(stamps) if stamps else None,
            })
        return rows
