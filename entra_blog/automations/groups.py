"""
Security group membership (Microsoft Graph).
Find the group by display name (creating it on request), then add each user
that is not already a member.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import quote

from ..config import GRAPH_API_VERSION, GRAPH_BASE_URL
from ..graph.client import GraphClient, odata_quote
from ..safety.guardian import WriteGuardian
from .base import AutomationError, AutomationResult, BaseAutomation

logger = logging.getLogger("entra_blog.automations.groups")


def mail_nickname(display_name: str) -> str:
    """Graph requires a mailNickname even for non-mail groups."""
    nickname = re.sub(r"[^A-Za-z0-9._-]", "", display_name.replace(" ", "-"))
    return nickname[:64] or "group"


def find_group(graph: GraphClient, display_name: str) -> Optional[dict]:
    groups = graph.get_all_pages(
        "groups",
        params={
            "$filter": f"displayName eq {odata_quote(display_name)}",
            "$select": "id,displayName,securityEnabled,mailEnabled",
        },
    )
    if len(groups) > 1:
        raise AutomationError(
            f"{len(groups)} groups named '{display_name}'; refusing to guess"
        )
    return groups[0] if groups else None


def find_user(graph: GraphClient, user_principal_name: str) -> dict:
    user = graph.get_optional(
        f"users/{quote(user_principal_name, safe='@')}",
        params={"$select": "id,displayName,userPrincipalName"},
    )
    if not user:
        raise AutomationError(f"User not found: {user_principal_name}")
    return user


class GroupMembership(BaseAutomation):
    name = "group"
    description = "Ensure users are members of a security group"
    write_endpoints = [
        r"/groups$",
        r"/groups/[^/]+/members/\$ref$",
    ]

    def __init__(
        self,
        graph: GraphClient,
        guardian: WriteGuardian,
        group_name: str,
        user_principal_names: list[str],
        create_group: bool = False,
        description: str = "",
    ):
        super().__init__(graph, guardian)
        if not group_name.strip():
            raise ValueError("group name must not be empty")
        if not user_principal_names:
            raise ValueError("at least one user is required")
        self.group_name = group_name.strip()
        self.user_principal_names = list(dict.fromkeys(user_principal_names))
        self.create_group = create_group
        self.group_description = description

    def run(self, result: AutomationResult):
        group = find_group(self.graph, self.group_name)
        created = False
        if group:
            result.add_step(f"Found group '{self.group_name}' ({group['id']})")
        elif self.create_group:
            group = self._create_group(result)
            created = True
        else:
            raise AutomationError(
                f"Group not found: {self.group_name} (use --create to create it)"
            )

        # A group created in this run has no members yet
        member_ids = set()
        if not created:
            member_ids = {
                m.get("id")
                for m in self.graph.get_all_pages(
                    f"groups/{group['id']}/members", params={"$select": "id"}
                )
            }

        for upn in self.user_principal_names:
            user = find_user(self.graph, upn)
            if user["id"] in member_ids:
                result.add_step(f"{upn}: already a member, skipping")
                continue
            self._add_member(result, group, user)
            member_ids.add(user["id"])

    def _create_group(self, result: AutomationResult) -> dict:
        body = {
            "displayName": self.group_name,
            "description": self.group_description or self.group_name,
            "mailEnabled": False,
            "mailNickname": mail_nickname(self.group_name),
            "securityEnabled": True,
        }
        created = self.graph.post("groups", json_body=body)
        result.add_change("create_group", self.group_name, group_id=created.get("id"))
        result.add_step(f"Created group '{self.group_name}'")
        return created

    def _add_member(self, result: AutomationResult, group: dict, user: dict):
        group_id = group.get("id") or "<new-group>"
        self.graph.post(
            f"groups/{group_id}/members/$ref",
            json_body={
                "@odata.id": f"{GRAPH_BASE_URL}/{GRAPH_API_VERSION}/directoryObjects/{user['id']}"
            },
        )
        result.add_change("add_member", self.group_name, user=user.get("userPrincipalName"))
        result.add_step(f"{user.get('userPrincipalName')}: added to '{self.group_name}'")
