"""
Tenant Profiles — Where the automation commands sign in and what they target.

Profiles are stored in:
    ~/.entra_blog/profiles.json

A profile names one tenant and the app registration used against it, and
carries what the automations would otherwise need on every command line:
the auth mode (PIM self-activation acts as a signed-in user, so it needs
``delegated``) and the subscription and resource group that `rbac assign`
targets when none is given. Select one with `--profile <name>`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger("entra_blog.profiles")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CONFIG_DIR = Path.home() / ".entra_blog"
_PROFILES_FILE = _CONFIG_DIR / "profiles.json"

AUTH_MODES = ("certificate", "delegated")

_GUID_RE = re.compile(r"^[0-9a-fA-F]{8}-(?:[0-9a-fA-F]{4}-){3}[0-9a-fA-F]{12}$")
# A tenant can also be named by one of its verified domains
_TENANT_DOMAIN_RE = re.compile(r"^[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+$")
# ARM resource group names
_RESOURCE_GROUP_RE = re.compile(r"^[-\w.()]{1,90}$")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass
class TenantProfile:
    """One tenant, the app registration used there, and automation defaults."""
    name: str                          # Short name (e.g. "lab", "contoso-prod")
    tenant_id: str                     # GUID or verified domain
    client_id: str                     # App registration (GUID)
    cert_path: str = "./base64.txt"    # Base64-encoded PFX, certificate mode only
    auth_mode: str = "certificate"
    tenant_display_name: str = ""
    subscription_id: str = ""          # Default for `rbac assign`
    resource_group: str = ""           # Narrows the default scope, needs subscription_id
    notes: str = ""

    def validate(self) -> None:
        """Raise ValueError for identifiers Entra or ARM would reject."""
        if not self.name.strip():
            raise ValueError("profile name must not be empty")
        if not (_GUID_RE.match(self.tenant_id) or _TENANT_DOMAIN_RE.match(self.tenant_id)):
            raise ValueError(
                f"tenant_id must be a GUID or a verified domain, got {self.tenant_id!r}"
            )
        if not _GUID_RE.match(self.client_id):
            raise ValueError(f"client_id must be a GUID, got {self.client_id!r}")
        if self.auth_mode not in AUTH_MODES:
            raise ValueError(
                f"auth_mode must be one of {', '.join(AUTH_MODES)}, got {self.auth_mode!r}"
            )
        if self.subscription_id and not _GUID_RE.match(self.subscription_id):
            raise ValueError(f"subscription_id must be a GUID, got {self.subscription_id!r}")
        if self.resource_group:
            if not self.subscription_id:
                raise ValueError("resource_group needs a subscription_id")
            if not _RESOURCE_GROUP_RE.match(self.resource_group) or self.resource_group.endswith("."):
                raise ValueError(f"invalid resource group name: {self.resource_group!r}")

    def resolve_cert_path(self) -> str:
        """Return absolute cert path, resolving ~ and relative paths."""
        p = Path(self.cert_path).expanduser()
        if not p.is_absolute():
            p = Path.cwd() / p
        return str(p)

    @property
    def default_scope(self) -> str:
        """ARM scope `rbac assign` uses when no subscription is given, or ""."""
        if not self.subscription_id:
            return ""
        scope = f"/subscriptions/{self.subscription_id}"
        if self.resource_group:
            scope += f"/resourceGroups/{self.resource_group}"
        return scope

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "TenantProfile":
        known = {f.name for f in fields(cls)} - {"name"}
        return cls(name=name, **{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        data = asdict(self)
        del data["name"]
        return data


@dataclass
class ProfileStore:
    """The profiles file: named profiles plus which one is the default."""
    profiles: dict[str, TenantProfile] = field(default_factory=dict)
    default_profile: str = ""
    path: Path = field(default_factory=lambda: _PROFILES_FILE)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ProfileStore":
        """Read the profiles file. A missing file is an empty store."""
        path = Path(path) if path else _PROFILES_FILE
        store = cls(path=path)
        if not path.exists():
            return store
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            store.default_profile = data.get("default_profile", "")
            for name, pdata in data.get("profiles", {}).items():
                store.profiles[name] = TenantProfile.from_dict(name, pdata)
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to parse {path}: {e}")
            print(f"  ⚠  Failed to parse {path.name}: {e}")
            return cls(path=path)
        return store

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "default_profile": self.default_profile,
            "profiles": {name: p.to_dict() for name, p in self.profiles.items()},
        }
        self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

    def add(self, profile: TenantProfile, set_default: bool = False) -> None:
        """Validate and store a profile, replacing one with the same name."""
        profile.validate()
        self.profiles[profile.name] = profile
        if set_default or not self.default_profile:
            self.default_profile = profile.name
        self.save()

    def remove(self, name: str) -> bool:
        if name not in self.profiles:
            return False
        del self.profiles[name]
        if self.default_profile == name:
            self.default_profile = next(iter(self.profiles), "")
        self.save()
        return True

    def get(self, name: str) -> Optional[TenantProfile]:
        """Get a profile by name (case-insensitive)."""
        key = name.lower()
        for pname, profile in self.profiles.items():
            if pname.lower() == key:
                return profile
        return None

    def get_default(self) -> Optional[TenantProfile]:
        if self.default_profile:
            return self.profiles.get(self.default_profile)
        return next(iter(self.profiles.values()), None)

    def set_default(self, name: str) -> bool:
        if name not in self.profiles:
            return False
        self.default_profile = name
        self.save()
        return True

    def list_profiles(self) -> list[TenantProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.name)


def resolve_profile(
    profile_name: Optional[str] = None,
    path: Optional[Path] = None,
) -> Optional[TenantProfile]:
    """The named profile, else the default one; None when nothing matches."""
    store = ProfileStore.load(path)
    if profile_name:
        return store.get(profile_name)
    return store.get_default()
