"""
Configuration module for the Entra identity blog toolchain.
Defines API endpoints, parameter limits, and the JSON-loadable config tree.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Will be prompted if empty

@dataclass
class DelegatedAuth:
    """Delegated (device code) authentication configuration."""
    tenant_id: str
    client_id: str

@dataclass
class AuthConfig:
    """Authentication configuration — supports both modes."""
    mode: str = "certificate"  # "certificate" or "delegated"
    certificate: Optional[CertificateAuth] = None
    delegated: Optional[DelegatedAuth] = None


# ─── API Settings ────────────────────────────────────────────────────────────

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"

GRAPH_BASE_URL = "https://graph.microsoft.com"
GRAPH_API_VERSION = "v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]

ARM_BASE_URL = "https://management.azure.com"
ARM_AUTHORIZATION_API_VERSION = "2022-04-01"
ARM_SCOPES = ["https://management.azure.com/.default"]

MAX_PAGES_PER_ENDPOINT = 1000    # Safety cap on pagination loops
REQUEST_TIMEOUT_SECONDS = 60.0

CERT_PASSWORD_ENV = "ENTRA_BLOG_CERT_PASSWORD"


# ─── Automation Parameters ───────────────────────────────────────────────────

# Directory roles the PIM activation example accepts
PIM_ROLE_CHOICES = [
    "Global Administrator",
    "Global Reader",
    "Privileged Role Administrator",
    "Security Administrator",
    "Security Reader",
    "User Administrator",
    "Groups Administrator",
    "Application Administrator",
    "Cloud Application Administrator",
    "Conditional Access Administrator",
    "Exchange Administrator",
    "SharePoint Administrator",
    "Intune Administrator",
    "Helpdesk Administrator",
    "Authentication Administrator",
]

PIM_MIN_DURATION_HOURS = 1
PIM_MAX_DURATION_HOURS = 8
PIM_DEFAULT_DURATION_HOURS = 1

RBAC_PRINCIPAL_TYPES = ["User", "Group", "ServicePrincipal"]


# ─── Posts ───────────────────────────────────────────────────────────────────

POST_LAYOUT = "post"
POST_EXTENSIONS = (".md", ".markdown")

@dataclass
class PostsConfig:
    """Where posts live and what new posts default to."""
    directory: str = "_posts"
    default_author: str = ""
    default_tags: list[str] = field(default_factory=lambda: ["azure", "identity"])

    @property
    def path(self) -> Path:
        return Path(self.directory).expanduser()


@dataclass
class AutomationConfig:
    """Behaviour shared by every automation command."""
    what_if: bool = False                       # Plan writes, send none
    default_duration_hours: int = PIM_DEFAULT_DURATION_HOURS
    report_path: str = ""                       # JSON run record, if set


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class BlogConfig:
    """Top-level configuration for the toolchain."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    posts: PostsConfig = field(default_factory=PostsConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    verbose: bool = False

    @classmethod
    def from_file(cls, path) -> "BlogConfig":
        """
        Load configuration from a JSON file.

        Raises ValueError for malformed JSON or a section missing a
        required key (tenant_id, client_id).
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        try:
            return cls._from_dict(data)
        except KeyError as e:
            raise ValueError(f"Config file {path} is missing required key {e}") from e
        except (AttributeError, TypeError) as e:
            raise ValueError(f"Config file {path} has a malformed section: {e}") from e

    @classmethod
    def _from_dict(cls, data: dict) -> "BlogConfig":
        config = cls()
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "certificate")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                )
            if "delegated" in auth_data:
                d = auth_data["delegated"]
                config.auth.delegated = DelegatedAuth(
                    tenant_id=d["tenant_id"],
                    client_id=d["client_id"],
                )
        if "posts" in data:
            for k, v in data["posts"].items():
                if hasattr(config.posts, k):
                    setattr(config.posts, k, v)
        if "automation" in data:
            for k, v in data["automation"].items():
                if hasattr(config.automation, k):
                    setattr(config.automation, k, v)
        config.verbose = data.get("verbose", False)
        return config


# ─── Required Permissions (per automation) ──────────────────────────────────

REQUIRED_PERMISSIONS = {
    "pim": {
        "RoleManagement.ReadWrite.Directory": "Request PIM self-activation",
        "RoleEligibilitySchedule.Read.Directory": "Read eligible role schedules",
        "RoleAssignmentSchedule.ReadWrite.Directory": "Read active role schedules",
    },
    "group": {
        "Group.ReadWrite.All": "Create security groups",
        "GroupMember.ReadWrite.All": "Add members to groups",
        "User.Read.All": "Look up users by UPN",
    },
    "rbac": {
        "Microsoft.Authorization/roleAssignments/write": "Create Azure RBAC assignments (ARM)",
        "Directory.Read.All": "Resolve users, groups and service principals",
    },
}
