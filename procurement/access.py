"""
Role-gated navigation.

Each console screen lists the roles allowed to open it.  Screens without a
role list are open to every signed-in user; anonymous sessions see nothing
but the login page.
"""
from dataclasses import dataclass
from typing import Optional

from models.auth import ALL_ROLES, AuthSession, Role

MANAGERS: tuple[Role, ...] = ("admin", "manager")


@dataclass(frozen=True)
class NavItem:
    name: str
    href: str
    roles: tuple[Role, ...] = ALL_ROLES


NAVIGATION: tuple[NavItem, ...] = (
    NavItem("Dashboard", "/"),
    NavItem("Products", "/products"),
    NavItem("Purchase Orders", "/purchase-orders", MANAGERS),
    NavItem("Purchases", "/purchases", MANAGERS),
    NavItem("Cancelled Items", "/cancelled-items", MANAGERS),
    NavItem("Sales", "/sales"),
    NavItem("Suppliers", "/suppliers", MANAGERS),
    NavItem("Customers", "/customers"),
    NavItem("Reports", "/reports", MANAGERS),
    NavItem("Recycle Bin", "/recycle-bin", MANAGERS),
    NavItem("Settings", "/settings", ("admin",)),
)

PUBLIC_PATHS = frozenset({"/login", "/forgot-password"})


def _nav_item(path: str) -> Optional[NavItem]:
    for item in NAVIGATION:
        if item.href == path:
            return item
    return None


def visible_navigation(session: AuthSession) -> list[NavItem]:
    """Sidebar entries the session's role may see."""
    if not session.is_authenticated:
        return []
    return [item for item in NAVIGATION if session.has_any_role(item.roles)]


def can_access(session: AuthSession, path: str) -> bool:
    if path in PUBLIC_PATHS:
        return True
    if not session.is_authenticated:
        return False
    item = _nav_item(path)
    if item is None:
        return True
    return session.has_any_role(item.roles)


def redirect_for(session: AuthSession, path: str) -> Optional[str]:
    """
    Where a request for *path* is sent instead, or None if it may proceed.
    Anonymous users go to the login page, under-privileged users to the
    dashboard.
    """
    if can_access(session, path):
        return None
    return "/login" if not session.is_authenticated else "/"
