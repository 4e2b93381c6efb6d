from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from pulse.core.roles import (
    ALL_ROLES,
    ROLE_ADMIN,
    ROLE_DELIVERY,
    ROLE_MANAGER,
    ROLE_OFFICE,
    ROLE_OWNER,
    ROLE_STAFF,
)

LOGIN_ROUTE = "/login"
UNAUTHORIZED_ROUTE = "/unauthorized"
CHANGE_PIN_ROUTE = "/change-pin"
CHANGE_PASSWORD_ROUTE = "/change-password"
ROTATION_ROUTES = frozenset({CHANGE_PIN_ROUTE, CHANGE_PASSWORD_ROUTE})

# Allowed roles per protected console route; sub-paths inherit from the longest
# prefix unless the route is listed in EXACT_ROUTES.
ROUTE_TABLE: Dict[str, FrozenSet[str]] = {
    "/dashboard": frozenset({ROLE_OWNER, ROLE_ADMIN}),
    "/owner/staff": frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_MANAGER}),
    "/staff": frozenset({ROLE_OFFICE, ROLE_MANAGER}),
    "/inventory/products": frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF}),
    "/delivery": frozenset({ROLE_DELIVERY, ROLE_OWNER, ROLE_MANAGER, ROLE_STAFF}),
    CHANGE_PIN_ROUTE: ALL_ROLES,
    CHANGE_PASSWORD_ROUTE: ALL_ROLES,
}

# /staff/{tenantId} is the public tenant-only login link, not a page of the staff view.
EXACT_ROUTES = frozenset({"/staff"})


def normalize_path(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0].strip()
    if not path.startswith("/"):
        path = f"/{path}"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def allowed_roles_for(path: str, table: Optional[Dict[str, FrozenSet[str]]] = None) -> Optional[FrozenSet[str]]:
    """Roles allowed on ``path``, or None when the route declares no restriction."""
    table = ROUTE_TABLE if table is None else table
    path = normalize_path(path)
    best: Optional[str] = None
    for route in table:
        if path == route or (route not in EXACT_ROUTES and path.startswith(f"{route}/")):
            if best is None or len(route) > len(best):
                best = route
    return table[best] if best is not None else None
