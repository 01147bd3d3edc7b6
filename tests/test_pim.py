import json
from datetime import datetime, timezone

import pytest

from entra_blog.automations import PimActivation, list_pim_roles
from entra_blog.graph.client import GraphClient
from entra_blog.safety.guardian import WriteGuardian

from conftest import by_filter

RD = "/v1.0/roleManagement/directory/roleDefinitions"
ACTIVE = "/v1.0/roleManagement/directory/roleAssignmentScheduleInstances"
ELIGIBLE = "/v1.0/roleManagement/directory/roleEligibilityScheduleInstances"
REQUESTS = "/v1.0/roleManagement/directory/roleAssignmentScheduleRequests"

UA_FILTER = "principalId eq 'u1' and roleDefinitionId eq 'r-ua'"
SR_FILTER = "principalId eq 'u1' and roleDefinitionId eq 'r-sr'"


@pytest.fixture
def tenant(fake_api):
    fake_api.add("GET", "/v1.0/me", json={"id": "u1", "userPrincipalName": "jane@contoso.com"})
    fake_api.add("GET", RD, handler=by_filter({
        "displayName eq 'User Administrator'": {"value": [{"id": "r-ua"}]},
        "displayName eq 'Security Reader'": {"value": [{"id": "r-sr"}]},
    }))
    fake_api.add("GET", ACTIVE, handler=by_filter({}))
    fake_api.add("GET", ELIGIBLE, handler=by_filter({
        UA_FILTER: {"value": [{"id": "e1"}]},
        SR_FILTER: {"value": [{"id": "e2"}]},
    }))
    fake_api.add("POST", REQUESTS, status=201, json={"id": "req-1", "status": "Provisioned"})
    return fake_api


def _activation(graph, guardian, roles=("User Administrator",), hours=2, **kwargs):
    return PimActivation(graph, guardian, roles=list(roles), duration_hours=hours,
                         justification="Reset a locked account", **kwargs)


def test_activates_eligible_role(tenant, graph, guardian):
    result = _activation(graph, guardian).execute()

    assert result.status == "succeeded"
    assert result.exit_code == 0
    posts = tenant.sent("POST")
    assert len(posts) == 1
    body = json.loads(posts[0].content)
    assert body["action"] == "selfActivate"
    assert body["principalId"] == "u1"
    assert body["roleDefinitionId"] == "r-ua"
    assert body["directoryScopeId"] == "/"
    assert body["justification"] == "Reset a locked account"
    assert body["scheduleInfo"]["expiration"] == {"type": "AfterDuration", "duration": "PT2H"}
    assert result.changes[0]["request_id"] == "req-1"


def test_already_active_role_is_skipped(tenant, graph, guardian):
    tenant.add("GET", ACTIVE, handler=by_filter({
        UA_FILTER: {"value": [{"id": "a1", "endDateTime": "2024-01-01T10:00:00Z"}]},
    }))
    result = _activation(graph, guardian).execute()

    assert result.status == "skipped"
    assert result.exit_code == 0
    assert tenant.sent("POST") == []
    assert "already active" in result.steps[-1]


def test_not_eligible_fails(tenant, graph, guardian):
    tenant.add("GET", ELIGIBLE, handler=by_filter({}))
    result = _activation(graph, guardian).execute()

    assert result.status == "failed"
    assert result.exit_code == 1
    assert "no eligible assignment" in result.error
    assert tenant.sent("POST") == []


def test_first_error_stops_the_run(tenant, graph, guardian):
    tenant.add("GET", RD, handler=by_filter({
        "displayName eq 'Security Reader'": {"value": [{"id": "r-sr"}]},
    }))
    result = _activation(graph, guardian, roles=("User Administrator", "Security Reader")).execute()

    assert result.status == "failed"
    assert "Role definition not found: User Administrator" in result.error
    assert tenant.sent("POST") == []


def test_multiple_roles_each_activated(tenant, graph, guardian):
    result = _activation(graph, guardian, roles=("User Administrator", "Security Reader")).execute()
    assert result.status == "succeeded"
    assert [c["target"] for c in result.changes] == ["User Administrator", "Security Reader"]


def test_what_if_sends_no_request(tenant):
    guardian = WriteGuardian(what_if=True)
    with GraphClient("t", guardian, transport=tenant.transport) as graph:
        result = _activation(graph, guardian).execute()

    assert result.status == "succeeded"
    assert result.what_if is True
    assert tenant.sent("POST") == []
    assert len(guardian.planned) == 1
    assert "would be activated" in result.steps[-1]


def test_ticket_info_and_start_time():
    activation = PimActivation(None, WriteGuardian(), roles=["Global Reader"], duration_hours=8,
                               justification="audit", ticket_number="CHG-42", ticket_system="SNOW")
    body = activation.build_request("u1", "r1", now=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc))
    assert body["ticketInfo"] == {"ticketNumber": "CHG-42", "ticketSystem": "SNOW"}
    assert body["scheduleInfo"]["startDateTime"] == "2024-05-01T09:30:00Z"
    assert body["scheduleInfo"]["expiration"]["duration"] == "PT8H"


@pytest.mark.parametrize("hours", [0, 9, -1])
def test_duration_out_of_range(hours):
    with pytest.raises(ValueError, match="between 1 and 8"):
        PimActivation(None, WriteGuardian(), roles=["Global Reader"], duration_hours=hours,
                      justification="x")


def test_unknown_role_rejected():
    with pytest.raises(ValueError, match="unsupported role"):
        PimActivation(None, WriteGuardian(), roles=["Supreme Leader"], duration_hours=1,
                      justification="x")


def test_blank_justification_rejected():
    with pytest.raises(ValueError, match="justification"):
        PimActivation(None, WriteGuardian(), roles=["Global Reader"], duration_hours=1,
                      justification="   ")


def test_duplicate_roles_collapse():
    activation = PimActivation(None, WriteGuardian(), roles=["Global Reader", "Global Reader"],
                               duration_hours=1, justification="x")
    assert activation.roles == ["Global Reader"]


def test_signed_in_principal_required(fake_api, graph, guardian):
    fake_api.add("GET", "/v1.0/me", json={})
    result = _activation(graph, guardian).execute()
    assert result.status == "failed"
    assert "signed-in user" in result.error


def test_list_pim_roles(fake_api, graph):
    fake_api.add("GET", "/v1.0/me", json={"id": "u1"})
    fake_api.add("GET", ELIGIBLE, json={"value": [
        {"roleDefinitionId": "r-ua", "roleDefinition": {"displayName": "User Administrator"},
         "directoryScopeId": "/", "endDateTime": None},
    ]})
    fake_api.add("GET", ACTIVE, json={"value": []})

    summary = list_pim_roles(graph)
    assert summary["eligible"][0]["role"] == "User Administrator"
    assert summary["active"] == []
    assert fake_api.requests[1].url.params["$filter"] == "principalId eq 'u1'"
