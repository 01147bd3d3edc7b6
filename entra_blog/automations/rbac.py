"""
Azure RBAC role assignment (Azure Resource Manager).
Resolve the principal in Entra ID, the role definition at the target scope,
and create the assignment unless the same principal already holds the same
role at exactly that scope.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional
from urllib.parse import quote

from ..config import RBAC_PRINCIPAL_TYPES
from ..graph.client import ArmClient, GraphClient, odata_quote
from ..safety.guardian import WriteGuardian
from .base import AutomationError, AutomationResult, BaseAutomation

logger = logging.getLogger("entra_blog.automations.rbac")

AUTHORIZATION_PROVIDER = "providers/Microsoft.Authorization"


def build_scope(subscription_id: str, resource_group: Optional[str] = None) -> str:
    """ARM scope string for a subscription or one of its resource groups."""
    if not subscription_id.strip():
        raise ValueError("subscription id must not be empty")
    scope = f"/subscriptions/{subscription_id.strip()}"
    if resource_group:
        scope += f"/resourceGroups/{resource_group.strip()}"
    return scope


def resolve_principal(graph: GraphClient, name: str, principal_type: str) -> dict:
    """Find a user (by UPN), group or service principal (by display name)."""
    if principal_type == "User":
        user = graph.get_optional(
            f"users/{quote(name, safe='@')}",
            params={"$select": "id,displayName,userPrincipalName"},
        )
        matches = [user] if user else []
    elif principal_type in ("Group", "ServicePrincipal"):
        collection = "groups" if principal_type == "Group" else "servicePrincipals"
        matches = graph.get_all_pages(
            collection,
            params={
                "$filter": f"displayName eq {odata_quote(name)}",
                "$select": "id,displayName",
            },
        )
    else:
        raise ValueError(f"principal type must be one of {RBAC_PRINCIPAL_TYPES}")

    if not matches:
        raise AutomationError(f"{principal_type} not found: {name}")
    if len(matches) > 1:
        raise AutomationError(
            f"{len(matches)} objects of type {principal_type} named '{name}'; refusing to guess"
        )
    return matches[0]


def find_role_definition(arm: ArmClient, scope: str, role_name: str) -> dict:
    roles = arm.get_all_pages(
        f"{scope}/{AUTHORIZATION_PROVIDER}/roleDefinitions",
        params={"$filter": f"roleName eq {odata_quote(role_name)}"},
    )
    if not roles:
        raise AutomationError(f"Azure role definition not found: {role_name}")
    return roles[0]


def _role_guid(role_definition_id: str) -> str:
    return role_definition_id.rstrip("/").rsplit("/", 1)[-1].lower()


class RoleAssignment(BaseAutomation):
    name = "rbac"
    description = "Assign an Azure RBAC role to a user, group or service principal"
    write_endpoints = [r"/providers/Microsoft\.Authorization/roleAssignments/[0-9a-f-]{36}$"]

    def __init__(
        self,
        graph: GraphClient,
        arm: ArmClient,
        guardian: WriteGuardian,
        subscription_id: str,
        role_name: str,
        principal_name: str,
        principal_type: str = "User",
        resource_group: Optional[str] = None,
        assignment_name_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ):
        super().__init__(graph, guardian)
        if principal_type not in RBAC_PRINCIPAL_TYPES:
            raise ValueError(f"principal type must be one of {RBAC_PRINCIPAL_TYPES}")
        if not role_name.strip():
            raise ValueError("role name must not be empty")
        if not principal_name.strip():
            raise ValueError("principal name must not be empty")
        self.arm = arm
        self.scope = build_scope(subscription_id, resource_group)
        self.role_name = role_name.strip()
        self.principal_name = principal_name.strip()
        self.principal_type = principal_type
        self._new_name = assignment_name_factory

    def run(self, result: AutomationResult):
        principal = resolve_principal(self.graph, self.principal_name, self.principal_type)
        principal_id = principal["id"]
        result.add_step(f"Resolved {self.principal_type} '{self.principal_name}' ({principal_id})")

        role = find_role_definition(self.arm, self.scope, self.role_name)
        role_guid = _role_guid(role["id"])
        result.add_step(f"Resolved role '{self.role_name}' ({role_guid})")

        existing = self.arm.get_all_pages(
            f"{self.scope}/{AUTHORIZATION_PROVIDER}/roleAssignments",
            params={"$filter": f"principalId eq {odata_quote(principal_id)}"},
        )
        for assignment in existing:
            props = assignment.get("properties", {})
            if _role_guid(props.get("roleDefinitionId", "")) != role_guid:
                continue
            assigned_scope = (props.get("scope") or "").rstrip("/").lower()
            if assigned_scope == self.scope.lower():
                result.add_step(
                    f"'{self.role_name}' already assigned at {self.scope}, skipping"
                )
                return
            result.add_step(f"'{self.role_name}' also inherited from {props.get('scope')}")

        assignment_name = str(self._new_name())
        body = {
            "properties": {
                "roleDefinitionId": role["id"],
                "principalId": principal_id,
                "principalType": self.principal_type,
            }
        }
        response = self.arm.put(
            f"{self.scope}/{AUTHORIZATION_PROVIDER}/roleAssignments/{assignment_name}",
            json_body=body,
        )
        result.add_change(
            "assign_role",
            self.scope,
            role=self.role_name,
            principal=self.principal_name,
            assignment_id=response.get("id"),
        )
        verb = "would be assigned" if response.get("_what_if") else "assigned"
        result.add_step(f"'{self.role_name}' {verb} to '{self.principal_name}' at {self.scope}")
