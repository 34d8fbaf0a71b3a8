import pytest
from pydantic import ValidationError

from eventhub.model.user import Admin, Organizer, Participant, Profile, SessionContext
from eventhub.navigation import logout, render_navbar
from eventhub.pages import placeholder_page, title_from_slug


def paths(navbar):
    return [link.path for link in navbar.links]


def test_no_user_renders_nothing():
    assert render_navbar(SessionContext(), "/dashboard") is None


def test_participant_links():
    navbar = render_navbar(SessionContext(user=Participant(email="asha@iiit.ac.in")), "/clubs")

    assert paths(navbar) == ["/dashboard", "/browse-events", "/clubs", "/my-events", "/profile"]
    assert [link.path for link in navbar.links if link.active] == ["/clubs"]
    assert navbar.role == "participant"


def test_organizer_links():
    navbar = render_navbar(SessionContext(user=Organizer(email="club@iiit.ac.in")), "/dashboard")

    assert paths(navbar) == ["/dashboard", "/organizer-events", "/profile"]
    assert navbar.links[1].label == "My Events"


def test_admin_links():
    navbar = render_navbar(SessionContext(user=Admin(email="admin@iiit.ac.in")), "/nowhere")

    assert paths(navbar) == ["/dashboard", "/admin"]
    assert not any(link.active for link in navbar.links)
    assert navbar.brand == "Felicity"
    assert navbar.brand_target == "/dashboard"


def test_session_parses_role_tagged_user():
    session = SessionContext.model_validate({
        "token": "jwt",
        "user": {"email": "x@y.z", "role": "organizer", "profile": {"firstName": "Ravi"}},
    })

    assert isinstance(session.user, Organizer)
    assert session.user.profile.first_name == "Ravi"


def test_session_rejects_unknown_role():
    with pytest.raises(ValidationError):
        SessionContext.model_validate({"user": {"email": "x@y.z", "role": "superuser"}})


@pytest.mark.parametrize("user,expected", [
    (Participant(email="asha@iiit.ac.in", profile=Profile(first_name="Asha", last_name="Rao")), "Asha Rao"),
    (Participant(email="asha@iiit.ac.in", profile=Profile(first_name="Asha")), "Asha"),
    (Participant(email="asha@iiit.ac.in", profile=Profile(last_name="Rao")), "asha"),
    (Admin(email=""), "User"),
])
def test_display_name(user, expected):
    assert user.display_name == expected


def test_logout_clears_session():
    session = SessionContext(user=Admin(email="admin@iiit.ac.in"), token="jwt")

    cleared, redirect = logout(session)

    assert redirect == "/"
    assert cleared.user is None
    assert cleared.token is None
    assert session.token == "jwt"


def test_placeholder_page():
    page = placeholder_page(title_from_slug("payment-approvals"))

    assert page.title == "Payment Approvals"
    assert "soon" in page.message
