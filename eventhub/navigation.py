from typing import assert_never

from pydantic import BaseModel

from eventhub.model.user import Admin, Organizer, Participant, Role, SessionContext


ENTRY_ROUTE = "/"
BRAND = "Felicity"
BRAND_TARGET = "/dashboard"


class NavTarget(BaseModel):
    path: str
    label: str
    icon: str


class NavLink(NavTarget):
    active: bool = False


class Navbar(BaseModel):
    brand: str = BRAND
    brand_target: str = BRAND_TARGET
    links: list[NavLink]
    display_name: str
    role: Role


DASHBOARD = NavTarget(path="/dashboard", label="Dashboard", icon="🏠")
PROFILE = NavTarget(path="/profile", label="Profile", icon="👤")

PARTICIPANT_TARGETS = (
    DASHBOARD,
    NavTarget(path="/browse-events", label="Browse Events", icon="🎫"),
    NavTarget(path="/clubs", label="Clubs/Organizers", icon="🏢"),
    NavTarget(path="/my-events", label="My Events", icon="📋"),
    PROFILE,
)

ORGANIZER_TARGETS = (
    DASHBOARD,
    NavTarget(path="/organizer-events", label="My Events", icon="📋"),
    PROFILE,
)

ADMIN_TARGETS = (
    DASHBOARD,
    NavTarget(path="/admin", label="Admin Panel", icon="⚙️"),
)


def nav_targets(user: Participant | Organizer | Admin) -> tuple[NavTarget, ...]:
    match user:
        case Participant():
            return PARTICIPANT_TARGETS
        case Organizer():
            return ORGANIZER_TARGETS
        case Admin():
            return ADMIN_TARGETS
        case _:
            assert_never(user)


def render_navbar(session: SessionContext, current_path: str) -> Navbar | None:
    """Navigation for the session's user, or None when nobody is logged in."""
    user = session.user
    if user is None:
        return None

    links = [
        NavLink(**target.model_dump(), active=target.path == current_path)
        for target in nav_targets(user)
    ]
    return Navbar(links=links, display_name=user.display_name, role=user.role)


def logout(session: SessionContext) -> tuple[SessionContext, str]:
    """Drop everything held in the session and send the user back to the entry route."""
    return SessionContext(), ENTRY_ROUTE
