# core/plans.py
from enum import Enum
from typing import Dict, FrozenSet, Optional


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"
    ADMIN = "admin"


class Capability(str, Enum):
    BROWSE_MARKETPLACE = "browse_marketplace"
    USE_EDITOR = "use_editor"
    UPLOAD_PROMPT = "upload_prompt"
    SHOW_USAGE_COST = "show_usage_cost"
    UPGRADE_OFFER = "upgrade_offer"
    MANAGE_TEAMS = "manage_teams"
    ADMIN_CONSOLE = "admin_console"


_SIGNED_IN = frozenset({
    Capability.BROWSE_MARKETPLACE,
    Capability.USE_EDITOR,
    Capability.UPLOAD_PROMPT,
})

_CAPABILITIES: Dict[Optional[Plan], FrozenSet[Capability]] = {
    None: frozenset({Capability.BROWSE_MARKETPLACE, Capability.UPGRADE_OFFER}),
    Plan.FREE: _SIGNED_IN | {Capability.SHOW_USAGE_COST, Capability.UPGRADE_OFFER},
    Plan.PRO: _SIGNED_IN | {Capability.MANAGE_TEAMS},
    Plan.ENTERPRISE: _SIGNED_IN | {Capability.MANAGE_TEAMS},
    Plan.ADMIN: _SIGNED_IN | {Capability.ADMIN_CONSOLE},
}


def parse_plan(value) -> Optional[Plan]:
    """
    Map a stored plan string to a Plan. Missing or blank means anonymous
    (None); any other unknown string is rejected.
    """
    if value is None:
        return None
    if isinstance(value, Plan):
        return value
    s = str(value).strip().lower()
    if not s:
        return None
    try:
        return Plan(s)
    except ValueError:
        raise ValueError(f"Unknown plan {value!r}") from None


def capabilities_for(plan: Optional[Plan]) -> FrozenSet[Capability]:
    return _CAPABILITIES[parse_plan(plan)]


def has_capability(plan: Optional[Plan], capability: Capability) -> bool:
    return capability in capabilities_for(plan)
