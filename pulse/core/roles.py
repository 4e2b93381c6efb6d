"""Console roles and their landing routes.

Roles are a flat set: owner, admin, manager, office, staff, delivery. Nothing
here implies a hierarchy; routes and endpoints list the roles they admit.
"""
from __future__ import annotations

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_OFFICE = "office"
ROLE_STAFF = "staff"
ROLE_DELIVERY = "delivery"

STAFF_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_OFFICE, ROLE_STAFF, ROLE_DELIVERY})
ALL_ROLES = STAFF_ROLES | {ROLE_OWNER}

# Who may provision staff and reset their PINs.
STAFF_MANAGER_ROLES = frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_MANAGER})

ROLE_HOME = {
    ROLE_OWNER: "/dashboard",
    ROLE_ADMIN: "/dashboard",
    ROLE_MANAGER: "/staff",
    ROLE_OFFICE: "/staff",
    ROLE_STAFF: "/inventory/products",
    ROLE_DELIVERY: "/delivery",
}
DEFAULT_LANDING_ROUTE = "/"


def normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def landing_route_for(role: str | None) -> str:
    return ROLE_HOME.get(normalize_role(role), DEFAULT_LANDING_ROUTE)
