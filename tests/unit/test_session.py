"""Tests for session credential utilities."""
from jose import jwt


def test_user_id_from_token():
    """Test the sub claim is read without verification."""
    from goalsync.utils.session import user_id_from_token

    token = jwt.encode({"sub": "user123"}, "some-other-secret", algorithm="HS256")

    assert user_id_from_token(token) == "user123"


def test_user_id_fallbacks():
    from goalsync.utils.session import user_id_from_token

    assert user_id_from_token(None) == "current-user"
    assert user_id_from_token("not-a-jwt") == "current-user"


def test_auth_headers():
    from goalsync.utils.session import SessionCredential

    assert SessionCredential().auth_headers() == {}
    assert SessionCredential("abc").auth_headers() == {"Authorization": "Bearer abc"}


def test_listeners_notified_on_change_only():
    """Test subscribers hear about transitions, not repeated sets."""
    from goalsync.utils.session import SessionCredential

    session = SessionCredential()
    events = []
    session.subscribe(events.append)

    session.set("abc")
    session.set("def")
    session.clear()
    session.clear()

    assert events == [True, False]
    assert session.is_authenticated is False


def test_set_from_cookies():
    from goalsync.utils.session import SessionCredential

    session = SessionCredential()

    assert session.set_from_cookies({"other": "x"}, "auth_token") is False
    assert session.set_from_cookies({"auth_token": "abc"}, "auth_token") is True
    assert session.token == "abc"
