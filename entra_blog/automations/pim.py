"""
PIM role self-activation (Microsoft Graph).
For each requested directory role: find the role definition, skip it if an
activation is already live, require an eligibility, then submit a
selfActivate schedule request for the requested number of hours.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import PIM_MAX_DURATION_HOURS, PIM_MIN_DURATION_HOURS, PIM_ROLE_CHOICES
from ..graph.client import GraphClient, odata_quote
from ..safety.guardian import WriteGuardian
from .base import AutomationError, AutomationResult, BaseAutomation

logger = logging.getLogger("entra_blog.automations.pim")

ROLE_DEFINITIONS = "roleManagement/directory/roleDefinitions"
ACTIVE_INSTANCES = "roleManagement/directory/roleAssignmentScheduleInstances"
ELIGIBLE_INSTANCES = "roleManagement/directory/roleEligibilityScheduleInstances"
SCHEDULE_REQUESTS = "roleManagement/directory/roleAssignmentScheduleRequests"


def iso_duration(hours: int) -> str:
    """ISO-8601 duration for whole hours, e.g. PT4H."""
    return f"PT{hours}H"


def validate_duration(hours: int) -> int:
    if not PIM_MIN_DURATION_HOURS <= hours <= PIM_MAX_DURATION_HOURS:
        raise ValueError(
            f"duration must be between {PIM_MIN_DURATION_HOURS} and "
            f"{PIM_MAX_DURATION_HOURS} hours, got {hours}"
        )
    return hours


def validate_roles(roles: list[str]) -> list[str]:
    """Reject unknown role names; drop duplicates keeping order."""
    if not roles:
        raise ValueError("at least one role is required")
    unknown = [r for r in roles if r not in PIM_ROLE_CHOICES]
    if unknown:
        raise ValueError(f"unsupported role(s): {', '.join(unknown)}")
    return list(dict.fromkeys(roles))


def get_signed_in_principal(graph: GraphClient) -> dict:
    me = graph.get("me", params={"$select": "id,displayName,userPrincipalName"})
    if not me.get("id"):
        raise AutomationError("Could not resolve the signed-in user (delegated auth required).")
    return me


def find_role_definition(graph: GraphClient, role_name: str) -> dict:
    roles = graph.get_all_pages(
        ROLE_DEFINITIONS,
        params={"$filter": f"displayName eq {odata_quote(role_name)}", "$select": "id,displayName"},
    )
    if not roles:
        raise AutomationError(f"Role definition not found: {role_name}")
    return roles[0]


def _principal_role_filter(principal_id: str, role_id: str) -> dict:
    return {
        "$filter": (
            f"principalId eq {odata_quote(principal_id)} and "
            f"roleDefinitionId eq {odata_quote(role_id)}"
        )
    }


class PimActivation(BaseAutomation):
    name = "pim"
    description = "Self-activate eligible PIM directory roles for a fixed duration"
    write_endpoints = [r"/roleManagement/directory/roleAssignmentScheduleRequests$"]

    def __init__(
        self,
        graph: GraphClient,
        guardian: WriteGuardian,
        roles: list[str],
        duration_hours: int,
        justification: str,
        ticket_number: Optional[str] = None,
        ticket_system: str = "",
    ):
        super().__init__(graph, guardian)
        self.roles = validate_roles(roles)
        self.duration_hours = validate_duration(duration_hours)
        if not justification or not justification.strip():
            raise ValueError("justification must not be empty")
        self.justification = justification.strip()
        self.ticket_number = ticket_number
        self.ticket_system = ticket_system

    def run(self, result: AutomationResult):
        me = get_signed_in_principal(self.graph)
        principal_id = me["id"]
        result.add_step(f"Signed in as {me.get('userPrincipalName') or principal_id}")

        for role_name in self.roles:
            self._activate(result, principal_id, role_name)

    def _activate(self, result: AutomationResult, principal_id: str, role_name: str):
        role = find_role_definition(self.graph, role_name)
        role_id = role["id"]
        query = _principal_role_filter(principal_id, role_id)

        active = self.graph.get_all_pages(ACTIVE_INSTANCES, params=query)
        if active:
            ends = active[0].get("endDateTime") or "permanent"
            result.add_step(f"{role_name}: already active (until {ends}), skipping")
            return

        eligible = self.graph.get_all_pages(ELIGIBLE_INSTANCES, params=query)
        if not eligible:
            raise AutomationError(f"{role_name}: no eligible assignment for this principal")

        body = self.build_request(principal_id, role_id)
        response = self.graph.post(SCHEDULE_REQUESTS, json_body=body)
        result.add_change(
            "activate_role",
            role_name,
            duration=iso_duration(self.duration_hours),
            request_id=response.get("id"),
            request_status=response.get("status"),
        )
        verb = "would be activated" if response.get("_what_if") else "activation requested"
        result.add_step(f"{role_name}: {verb} for {self.duration_hours}h")

    def build_request(self, principal_id: str, role_id: str, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        body = {
            "action": "selfActivate",
            "principalId": principal_id,
            "roleDefinitionId": role_id,
            "directoryScopeId": "/",
            "justification": self.justification,
            "scheduleInfo": {
                "startDateTime": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "expiration": {
                    "type": "AfterDuration",
                    "duration": iso_duration(self.duration_hours),
                },
            },
        }
        if self.ticket_number:
            body["ticketInfo"] = {
                "ticketNumber": self.ticket_number,
                "ticketSystem": self.ticket_system,
            }
        return body


def list_pim_roles(graph: GraphClient) -> dict[str, list[dict]]:
    """Eligible and active directory roles of the signed-in principal."""
    me = get_signed_in_principal(graph)
    query = {
        "$filter": f"principalId eq {odata_quote(me['id'])}",
        "$expand": "roleDefinition($select=displayName)",
    }
    summary: dict[str, list[dict]] = {}
    for label, endpoint in (("eligible", ELIGIBLE_INSTANCES), ("active", ACTIVE_INSTANCES)):
        summary[label] = [
            {
                "role": (i.get("roleDefinition") or {}).get("displayName") or i.get("roleDefinitionId"),
                "roleDefinitionId": i.get("roleDefinitionId"),
                "directoryScopeId": i.get("directoryScopeId"),
                "startDateTime": i.get("startDateTime"),
                "endDateTime": i.get("endDateTime"),
            }
            for i in graph.get_all_pages(endpoint, params=query)
        ]
    return summary
