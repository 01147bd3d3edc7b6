from .base import AutomationError, AutomationResult, BaseAutomation
from .pim import PimActivation, list_pim_roles
from .groups import GroupMembership
from .rbac import RoleAssignment

ALL_AUTOMATIONS = [
    PimActivation,
    GroupMembership,
    RoleAssignment,
]

__all__ = [
    "AutomationError",
    "AutomationResult",
    "BaseAutomation",
    "PimActivation",
    "GroupMembership",
    "RoleAssignment",
    "list_pim_roles",
    "ALL_AUTOMATIONS",
]
