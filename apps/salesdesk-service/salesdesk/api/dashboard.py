"""
Dashboard reporting endpoints.
"""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from salesdesk.api.deps import get_current_actor, get_dashboard
from salesdesk.api.permissions import Actor
from salesdesk.db import schemas
from salesdesk.services.dashboard import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class DashboardStats(BaseModel):
    total_clients: int
    active_proposals: int
    conversion_rate: int
    total_value: str
    total_value_display: str


class OperatorActivity(BaseModel):
    user_id: str
    user_name: str
    user_email: str
    user_role: str
    sector: str
    organization_id: Optional[int] = None
    organization_name: str
    clients_count: int
    proposals_count: int
    last_activity: Optional[datetime] = None


@router.get("/stats", response_model=DashboardStats)
def stats(actor: Actor = Depends(get_current_actor), dashboard: DashboardService = Depends(get_dashboard)):
    return dashboard.stats(actor)


@router.get("/proposals-by-status", response_model=Dict[str, int])
def proposals_by_status(actor: Actor = Depends(get_current_actor), dashboard: DashboardService = Depends(get_dashboard)):
    return dashboard.proposals_by_status(actor)


@router.get("/recent-activity", response_model=List[schemas.ProposalWithDetails])
def recent_activity(actor: Actor = Depends(get_current_actor), dashboard: DashboardService = Depends(get_dashboard)):
    return dashboard.recent_activity(actor)


@router.get("/operator-activity", response_model=List[OperatorActivity])
def operator_activity(actor: Actor = Depends(get_current_actor), dashboard: DashboardService = Depends(get_dashboard)):
    return dashboard.operator_activity(actor)
