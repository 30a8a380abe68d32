from decimal import Decimal

import pytest

from salesdesk.errors import (
    Conflict,
    ConflictReason,
    Forbidden,
    ForbiddenReason,
    NotFound,
    ValidationFailed,
)
from salesdesk.services.records import RecordService
from salesdesk.utils.scopes import AGREEMENT, BANK, PRODUCT


@pytest.fixture
def service(repo):
    return RecordService(repo)


@pytest.fixture
def sql_service(sql_repo):
    return RecordService(sql_repo)


# ----------------------------------------------------------------------
# acceptance scenarios, on every backend
# ----------------------------------------------------------------------
def test_agent_lists_only_own_clients(service, tenants):
    actors = tenants.actors
    service.create_client(actors.agent_a1, {"name": "Carlos"})
    service.create_client(actors.agent_a2, {"name": "Daniela"})
    service.create_client(actors.agent_a2, {"name": "Elisa"})
    service.create_client(actors.manager_a, {"name": "Fábio"})

    visible = service.list_clients(actors.agent_a1)

    assert [c.name for c in visible] == ["Carlos"]
    assert all(c.created_by_id == actors.agent_a1.id for c in visible)
    assert len(service.list_clients(actors.manager_a)) == 4


def test_manager_cannot_update_client_of_other_organization(service, tenants, repo):
    actors = tenants.actors
    foreign = service.create_client(actors.agent_b, {"name": "Gustavo", "phone": "71 3333-0000"})

    with pytest.raises(Forbidden):
        service.update_client(actors.manager_a, foreign.id, {"phone": "00"})

    assert repo.get_client(foreign.id).phone == "71 3333-0000"


def test_duplicate_email_creates_no_second_user(service, tenants, repo, plain_password):
    before = len(repo.list_users())
    with pytest.raises(Conflict) as exc:
        service.create_user(tenants.actors.manager_a, {
            "name": "Ana Clone",
            "email": "ana@alfa.com",
            "password": plain_password,
        })
    assert exc.value.reason == ConflictReason.DUPLICATE_EMAIL
    assert len(repo.list_users()) == before


def test_only_superadmin_cannot_be_deleted(tenants, repo):
    admin_id = tenants.users.admin.id
    with pytest.raises(Conflict) as exc:
        repo.delete_user(admin_id)
    assert exc.value.reason == ConflictReason.LAST_ADMIN
    assert repo.get_user(admin_id).role == "superadmin"


# ----------------------------------------------------------------------
# organizations and users
# ----------------------------------------------------------------------
def test_manager_sees_only_own_organization(sql_service, sql_tenants):
    actors = sql_tenants.actors
    assert [o.name for o in sql_service.list_organizations(actors.manager_a)] == ["Alfa Crédito"]
    with pytest.raises(Forbidden) as exc:
        sql_service.get_organization(actors.manager_a, sql_tenants.org_b.id)
    assert exc.value.reason == ForbiddenReason.WRONG_ORGANIZATION
    with pytest.raises(Forbidden):
        sql_service.create_organization(actors.manager_a, {"name": "Nova"})


def test_superadmin_manages_organizations(sql_service, sql_tenants):
    admin = sql_tenants.actors.admin
    created = sql_service.create_organization(admin, {"name": "Gama Consig"})
    renamed = sql_service.update_organization(admin, created.id, {"website": "gama.com.br"})
    assert renamed.website == "gama.com.br"
    sql_service.delete_organization(admin, created.id)
    assert len(sql_service.list_organizations(admin)) == 2


def test_manager_creates_agent_in_own_organization(sql_service, sql_tenants, plain_password):
    manager = sql_tenants.actors.manager_a
    user = sql_service.create_user(manager, {"name": "Iara", "email": "Iara@Alfa.com", "password": plain_password})
    assert user.organization_id == sql_tenants.org_a.id
    assert user.role == "agent"
    assert user.email == "iara@alfa.com"
    assert user.password_hash.startswith("$argon2")


def test_create_user_rejects_short_password(sql_service, sql_tenants):
    with pytest.raises(ValidationFailed) as exc:
        sql_service.create_user(sql_tenants.actors.admin, {
            "name": "Joana",
            "email": "joana@alfa.com",
            "organization_id": sql_tenants.org_a.id,
            "password": "123",
        })
    assert "user.password" in exc.value.field_errors


def test_manager_cannot_create_superadmin(sql_service, sql_tenants, plain_password):
    with pytest.raises(Forbidden) as exc:
        sql_service.create_user(sql_tenants.actors.manager_a, {
            "name": "Sneaky",
            "email": "sneaky@alfa.com",
            "role": "superadmin",
            "password": plain_password,
        })
    assert exc.value.reason == ForbiddenReason.ROLE_NOT_PERMITTED


def test_agents_cannot_create_users(sql_service, sql_tenants, plain_password):
    with pytest.raises(Forbidden):
        sql_service.create_user(sql_tenants.actors.agent_a1, {
            "name": "Kaio", "email": "kaio@alfa.com", "password": plain_password,
        })


def test_agent_updates_own_profile_only(sql_service, sql_tenants):
    actors = sql_tenants.actors
    me = sql_service.update_user(actors.agent_a1, actors.agent_a1.id, {"phone": "71 98888-7777"})
    assert me.phone == "71 98888-7777"
    with pytest.raises(Forbidden) as exc:
        sql_service.update_user(actors.agent_a1, actors.agent_a2.id, {"phone": "1"})
    assert exc.value.reason == ForbiddenReason.NOT_CREATOR
    with pytest.raises(Forbidden):
        sql_service.update_user(actors.agent_a1, actors.agent_a1.id, {"role": "manager"})


def test_update_user_refuses_password_fields(sql_service, sql_tenants):
    actors = sql_tenants.actors
    with pytest.raises(ValidationFailed):
        sql_service.update_user(actors.admin, actors.agent_a1.id, {"password_hash": "x"})


def test_manager_cannot_delete_other_manager_or_self(sql_service, sql_tenants, sql_repo, plain_password):
    actors = sql_tenants.actors
    peer = sql_service.create_user(actors.admin, {
        "name": "Lia", "email": "lia@alfa.com", "role": "manager",
        "organization_id": sql_tenants.org_a.id, "password": plain_password,
    })
    with pytest.raises(Forbidden):
        sql_service.delete_user(actors.manager_a, peer.id)
    with pytest.raises(Forbidden):
        sql_service.delete_user(actors.manager_a, actors.manager_a.id)
    sql_service.delete_user(actors.manager_a, actors.agent_a2.id)
    with pytest.raises(NotFound):
        sql_repo.get_user(actors.agent_a2.id)


def test_manager_user_list_is_organization_scoped(sql_service, sql_tenants):
    emails = {u.email for u in sql_service.list_users(sql_tenants.actors.manager_b)}
    assert emails == {"bruno@beta.com", "bia@beta.com"}
    agent_view = sql_service.list_users(sql_tenants.actors.agent_b)
    assert [u.email for u in agent_view] == ["bia@beta.com"]


# ----------------------------------------------------------------------
# clients and reference data
# ----------------------------------------------------------------------
def test_created_client_is_stamped_with_creator_and_organization(sql_service, sql_tenants):
    agent = sql_tenants.actors.agent_b
    client = sql_service.create_client(agent, {"name": "Heitor", "created_by_id": "someone-else"})
    assert client.created_by_id == agent.id
    assert client.organization_id == sql_tenants.org_b.id


def test_agent_cannot_create_client_in_other_organization(sql_service, sql_tenants):
    with pytest.raises(Forbidden) as exc:
        sql_service.create_client(sql_tenants.actors.agent_a1, {
            "name": "Heitor", "organization_id": sql_tenants.org_b.id,
        })
    assert exc.value.reason == ForbiddenReason.WRONG_ORGANIZATION


def test_delete_client_in_scope(sql_service, sql_tenants):
    actors = sql_tenants.actors
    client = sql_service.create_client(actors.agent_a1, {"name": "Carlos"})
    with pytest.raises(Forbidden):
        sql_service.delete_client(actors.agent_a2, client.id)
    sql_service.delete_client(actors.manager_a, client.id)
    assert sql_service.list_clients(actors.agent_a1) == []


def test_reference_data_writes_need_superadmin(sql_service, sql_tenants):
    actors = sql_tenants.actors
    with pytest.raises(Forbidden):
        sql_service.create_reference(actors.manager_a, PRODUCT, {"name": "Consórcio"})
    product = sql_service.create_reference(actors.admin, PRODUCT, {"name": "Consórcio", "price": "R$ 900,00"})
    assert sql_service.get_reference(actors.agent_a1, PRODUCT, product.id).name == "Consórcio"
    updated = sql_service.update_reference(actors.admin, PRODUCT, product.id, {"price": "R$ 950,00"})
    assert updated.price == "R$ 950,00"
    sql_service.delete_reference(actors.admin, PRODUCT, product.id)
    assert [p.name for p in sql_service.list_reference(actors.agent_a1, PRODUCT)] == ["Novo empréstimo"]
    assert [a.name for a in sql_service.list_reference(actors.agent_a1, AGREEMENT)] == ["Beneficiário do INSS"]
    assert [b.name for b in sql_service.list_reference(actors.agent_a1, BANK)] == ["BMG"]


# ----------------------------------------------------------------------
# proposals
# ----------------------------------------------------------------------
def _proposal(service, tenants, actor, client, value, **extra):
    return service.create_proposal(actor, {
        "client_id": client.id, "product_id": tenants.product.id, "value": value, **extra,
    })


def test_proposal_filters_combine(sql_service, sql_tenants):
    agent = sql_tenants.actors.agent_a1
    carlos = sql_service.create_client(agent, {"name": "Carlos"})
    daniela = sql_service.create_client(agent, {"name": "Daniela"})
    a = _proposal(sql_service, sql_tenants, agent, carlos, "R$ 1.000,00", status="accepted")
    b = _proposal(sql_service, sql_tenants, agent, carlos, "R$ 5.000,00")
    c = _proposal(sql_service, sql_tenants, agent, daniela, "R$ 3.000,00")

    assert [p.id for p in sql_service.list_proposals(agent)] == [a.id, b.id, c.id]
    assert [p.id for p in sql_service.list_proposals(agent, status="negotiating")] == [b.id, c.id]
    assert [p.id for p in sql_service.list_proposals(agent, client_id=carlos.id, status="negotiating")] == [b.id]
    ranged = sql_service.list_proposals(agent, min_value=Decimal("2000"), max_value=Decimal("6000"))
    assert [p.id for p in ranged] == [c.id, b.id]
    assert sql_service.list_proposals(agent, client_id=daniela.id, min_value=Decimal("4000")) == []


def test_proposal_status_filter_is_validated(sql_service, sql_tenants):
    with pytest.raises(ValidationFailed):
        sql_service.list_proposals(sql_tenants.actors.agent_a1, status="won")


def test_proposal_for_invisible_client_is_forbidden(sql_service, sql_tenants):
    actors = sql_tenants.actors
    colleague_client = sql_service.create_client(actors.agent_a2, {"name": "Daniela"})
    with pytest.raises(Forbidden):
        _proposal(sql_service, sql_tenants, actors.agent_a1, colleague_client, "R$ 100,00")


def test_superadmin_proposal_inherits_client_organization(sql_service, sql_tenants):
    actors = sql_tenants.actors
    client = sql_service.create_client(actors.agent_b, {"name": "Heitor"})
    proposal = _proposal(sql_service, sql_tenants, actors.admin, client, "R$ 100,00")
    assert proposal.organization_id == sql_tenants.org_b.id
    assert proposal.created_by_id == actors.admin.id


def test_proposal_details_are_scoped(sql_service, sql_tenants):
    actors = sql_tenants.actors
    client = sql_service.create_client(actors.agent_a1, {"name": "Carlos"})
    _proposal(sql_service, sql_tenants, actors.agent_a1, client, "R$ 100,00")
    assert [p.client.name for p in sql_service.list_proposals_with_details(actors.manager_a)] == ["Carlos"]
    assert sql_service.list_proposals_with_details(actors.manager_b) == []


def test_update_and_delete_proposal(sql_service, sql_tenants):
    actors = sql_tenants.actors
    client = sql_service.create_client(actors.agent_a1, {"name": "Carlos"})
    proposal = _proposal(sql_service, sql_tenants, actors.agent_a1, client, "R$ 100,00")
    updated = sql_service.update_proposal(actors.agent_a1, proposal.id, {"status": "under_review"})
    assert updated.status == "under_review"
    with pytest.raises(Forbidden):
        sql_service.delete_proposal(actors.manager_b, proposal.id)
    sql_service.delete_proposal(actors.agent_a1, proposal.id)
    with pytest.raises(NotFound):
        sql_service.get_proposal(actors.agent_a1, proposal.id)


# ----------------------------------------------------------------------
# forms
# ----------------------------------------------------------------------
def test_public_template_read_hides_inactive(sql_service, sql_tenants):
    manager = sql_tenants.actors.manager_a
    live = sql_service.create_form_template(manager, {"name": "Simulação", "fields": [{"name": "nome"}]})
    off = sql_service.create_form_template(manager, {"name": "Antigo", "active": False})
    assert sql_service.get_public_form_template(live.id).name == "Simulação"
    with pytest.raises(NotFound):
        sql_service.get_public_form_template(off.id)
    # signed-in members of the organization still see it
    assert sql_service.get_form_template(sql_tenants.actors.agent_a1, off.id).active is False


def test_agent_edits_only_own_templates(sql_service, sql_tenants):
    actors = sql_tenants.actors
    template = sql_service.create_form_template(actors.manager_a, {"name": "Simulação"})
    with pytest.raises(Forbidden) as exc:
        sql_service.update_form_template(actors.agent_a1, template.id, {"name": "Meu"})
    assert exc.value.reason == ForbiddenReason.NOT_CREATOR
    own = sql_service.create_form_template(actors.agent_a1, {"name": "Rascunho"})
    assert sql_service.update_form_template(actors.agent_a1, own.id, {"active": False}).active is False


def test_submissions_are_listed_per_organization(sql_service, sql_tenants):
    actors = sql_tenants.actors
    alfa = sql_service.create_form_template(actors.manager_a, {"name": "Alfa"})
    beta = sql_service.create_form_template(actors.manager_b, {"name": "Beta"})
    mine = sql_service.submit_form({"form_template_id": alfa.id, "data": {"nome": "Carlos"}})
    sql_service.submit_form({"form_template_id": beta.id, "data": {"nome": "Heitor"}})

    assert [s.id for s in sql_service.list_form_submissions(actors.agent_a1)] == [mine.id]
    assert [s.id for s in sql_service.list_form_submissions(actors.manager_a, template_id=alfa.id)] == [mine.id]
    assert sql_service.list_form_submissions(actors.manager_a, template_id=beta.id) == []
    assert sql_service.list_form_submissions(actors.manager_a, status="processed") == []
    with pytest.raises(Forbidden):
        sql_service.delete_form_submission(actors.agent_a1, mine.id)
    sql_service.delete_form_submission(actors.manager_a, mine.id)
