"""Translation of REST transport failures and error statuses into typed outcomes."""
import json
from unittest.mock import MagicMock

import pytest
import requests

from salesdesk.db.adapters.baserow import BaserowClient
from salesdesk.db.adapters.http import error_from_response, json_or_none, send
from salesdesk.db.adapters.supabase import PostgrestClient, to_filters
from salesdesk.db.criteria import eq, in_, neq
from salesdesk.db.field_mapping import supabase_mapping
from salesdesk.errors import (
    BackendUnavailable,
    Conflict,
    ConflictReason,
    NotFound,
    ValidationFailed,
)
from salesdesk.utils.scopes import CLIENT


def _response(status, body=None, headers=None, raw=None):
    response = requests.Response()
    response.status_code = status
    if raw is not None:
        response._content = raw.encode()
    else:
        response._content = b"" if body is None else json.dumps(body).encode()
    response.headers.update(headers or {})
    return response


def _session(*responses, error=None):
    session = MagicMock()
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.side_effect = list(responses)
    return session


@pytest.mark.parametrize("error", [
    requests.ConnectionError("db.internal:5432 refused"),
    requests.Timeout("read timed out"),
    requests.RequestException("odd failure"),
])
def test_transport_failures_are_unavailable(error):
    with pytest.raises(BackendUnavailable) as exc:
        send(_session(error=error), "GET", "https://db.internal/rest/v1/clients", "clients", 1.0)
    assert "db.internal" not in exc.value.message
    assert exc.value.__cause__ is None


@pytest.mark.parametrize("status", [500, 502, 503, 401, 403])
def test_server_and_credential_errors_are_unavailable(status):
    assert isinstance(error_from_response(_response(status, {"message": "boom"}), "clients"), BackendUnavailable)


def test_unique_violation_is_duplicate_email():
    body = {"code": "23505", "message": 'duplicate key value violates unique constraint "users_email_key"'}
    for status in (409, 400):
        outcome = error_from_response(_response(status, body), "users")
        assert isinstance(outcome, Conflict)
        assert outcome.reason == ConflictReason.DUPLICATE_EMAIL


def test_foreign_key_violation_is_has_dependents():
    body = {"code": "23503", "message": "update or delete violates foreign key constraint"}
    outcome = error_from_response(_response(409, body), "products")
    assert isinstance(outcome, Conflict)
    assert outcome.reason == ConflictReason.HAS_DEPENDENTS


def test_not_found_and_bad_request():
    assert isinstance(error_from_response(_response(404), "clients"), NotFound)
    outcome = error_from_response(_response(400, {"detail": "invalid input syntax"}), "clients")
    assert isinstance(outcome, ValidationFailed)
    assert outcome.field_errors == {"clients": "invalid input syntax"}
    text = error_from_response(_response(422, raw="<html>nope</html>"), "clients")
    assert text.field_errors == {"clients": "<html>nope</html>"}


def test_send_raises_on_error_status():
    with pytest.raises(NotFound):
        send(_session(_response(404)), "GET", "https://x/rest/v1/clients", "clients", 1.0)


def test_json_or_none():
    assert json_or_none(_response(204)) is None
    assert json_or_none(_response(200, [{"id": 1}])) == [{"id": 1}]
    with pytest.raises(BackendUnavailable):
        json_or_none(_response(200, raw="not json"))


# ----------------------------------------------------------------------
# PostgREST
# ----------------------------------------------------------------------
def test_to_filters():
    cmap = supabase_mapping()[CLIENT]
    criteria = [
        eq("organization_id", 3),
        eq("agreement_id", None),
        neq("created_by_id", "u1"),
        neq("birth_date", None),
        in_("id", [1, 2]),
        in_("created_by_id", ['a"b']),
    ]
    assert to_filters(cmap, criteria) == [
        ("organization_id", "eq.3"),
        ("convenio_id", "is.null"),
        ("or", "(created_by_id.is.null,created_by_id.neq.u1)"),
        ("birth_date", "not.is.null"),
        ("id", "in.(1,2)"),
        ("created_by_id", 'in.("a\\"b")'),
    ]


def test_postgrest_select_sends_filters_and_order():
    session = _session(_response(200, [{"id": 1, "name": "Carlos"}]))
    client = PostgrestClient("https://xyz.supabase.co/", "service-key", session=session)

    rows = client.select("clients", [("organization_id", "eq.3")], ["created_at", "id"])

    assert rows == [{"id": 1, "name": "Carlos"}]
    method, url = session.request.call_args.args
    assert (method, url) == ("GET", "https://xyz.supabase.co/rest/v1/clients")
    assert session.request.call_args.kwargs["params"] == [
        ("select", "*"), ("organization_id", "eq.3"), ("order", "created_at.asc,id.asc"),
    ]
    session.headers.update.assert_called_once()


def test_postgrest_count_reads_content_range():
    session = _session(_response(206, [], {"Content-Range": "0-0/42"}))
    client = PostgrestClient("https://xyz.supabase.co", "service-key", session=session)
    assert client.count("proposals", [("product_id", "eq.7")]) == 42
    assert session.request.call_args.kwargs["headers"]["Prefer"] == "count=exact"


def test_postgrest_count_without_header():
    client = PostgrestClient("https://xyz.supabase.co", "k", session=_session(_response(200, [])))
    with pytest.raises(BackendUnavailable):
        client.count("proposals")


def test_postgrest_duplicate_insert():
    body = {"code": "23505", "message": "duplicate key value"}
    client = PostgrestClient("https://xyz.supabase.co", "k", session=_session(_response(409, body)))
    with pytest.raises(Conflict) as exc:
        client.insert("users", {"email": "ana@alfa.com"})
    assert exc.value.reason == ConflictReason.DUPLICATE_EMAIL


# ----------------------------------------------------------------------
# Baserow
# ----------------------------------------------------------------------
def test_baserow_list_rows_follows_pages():
    session = _session(
        _response(200, {"results": [{"id": 1}, {"id": 2}], "next": "https://api.baserow.io/...page=2"}),
        _response(200, {"results": [{"id": 3}], "next": None}),
    )
    client = BaserowClient("https://api.baserow.io", "token", session=session, page_size=2)

    rows = client.list_rows(101, {"organizacao_id": 3})

    assert [r["id"] for r in rows] == [1, 2, 3]
    assert session.request.call_count == 2
    url = session.request.call_args.args[1]
    assert url == "https://api.baserow.io/api/database/rows/table/101/"
    params = session.request.call_args.kwargs["params"]
    assert params["filter__organizacao_id__equal"] == 3
    assert params["user_field_names"] == "true"


def test_baserow_missing_rows():
    client = BaserowClient("https://api.baserow.io", "token", session=_session(_response(404), _response(404), _response(404)))
    assert client.get_row(101, 9) is None
    assert client.update_row(101, 9, {"nome": "x"}) is None
    assert client.delete_row(101, 9) is False


def test_baserow_outage():
    client = BaserowClient("https://api.baserow.io", "token", session=_session(error=requests.Timeout()))
    with pytest.raises(BackendUnavailable):
        client.create_row(101, {"nome": "x"})
