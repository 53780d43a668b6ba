import pytest

from errors import Busy, NotAuthenticated
from session_guard import Session


def test_second_acquire_is_rejected_while_held():
    session = Session(authenticated=True)
    token = session.acquire("CREATE_PROJECT")

    assert session.busy
    with pytest.raises(Busy) as excinfo:
        session.acquire("OPEN_PROJECT")
    assert "CREATE_PROJECT" in str(excinfo.value)


def test_acquire_succeeds_again_after_release():
    session = Session()
    token = session.acquire()

    assert session.release(token) is True
    assert not session.busy
    second = session.acquire()
    assert session.holder == second
    assert second.token_id != token.token_id


def test_guarded_releases_on_exception():
    session = Session()

    with pytest.raises(RuntimeError):
        with session.guarded("NEW_CHAT"):
            assert session.busy
            raise RuntimeError("modal vanished")

    assert not session.busy
    session.release(session.acquire())


def test_guarded_releases_on_success():
    session = Session()
    with session.guarded("SET_WEBSEARCH") as token:
        assert session.holder == token
    assert not session.busy


def test_stale_token_release_is_ignored():
    session = Session()
    old = session.acquire()
    session.release(old)
    current = session.acquire()

    assert session.release(old) is False
    assert session.busy
    assert session.release(current) is True


def test_require_authenticated():
    session = Session()
    with pytest.raises(NotAuthenticated):
        session.require_authenticated()

    session.mark_authenticated()
    session.require_authenticated()
    assert session.authenticated
