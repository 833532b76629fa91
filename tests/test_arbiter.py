# tests/test_arbiter.py
import pytest

from arbiter import AWAITING_MESSAGE, SignInArbiter, SignInState
from directory import IdentityDirectory
from errors import NotFound


@pytest.fixture
def directory():
    d = IdentityDirectory()
    d.create_or_bind("1234", "c1", {"nickname": "Alice"})
    return d


@pytest.fixture
def arbiter(directory, outbox):
    return SignInArbiter(directory, outbox)


def test_open_asks_the_live_session_and_tells_the_requester_to_wait(arbiter, directory, outbox):
    request = arbiter.open("1234", "c2")

    assert request.state is SignInState.PENDING
    assert len(arbiter) == 1
    assert outbox.to("c1") == [("signInRequest", {"requestId": request.request_id})]
    assert outbox.to("c2") == [("awaitingAuthorization", {"message": AWAITING_MESSAGE})]
    assert directory.live_session("1234") == "c1"


def test_request_ids_are_unique_even_with_a_frozen_clock(directory, outbox):
    arbiter = SignInArbiter(directory, outbox, clock=lambda: 42)
    ids = {arbiter.open("1234", f"c{n}").request_id for n in range(2, 7)}
    assert len(ids) == 5


def test_approve_hands_the_session_over(arbiter, directory, outbox):
    request = arbiter.open("1234", "c2")
    outbox.clear()

    arbiter.approve(request.request_id, "c1")

    assert request.state is SignInState.APPROVED
    assert directory.live_session("1234") == "c2"
    assert directory.resolve("c2") == "1234"
    assert directory.resolve("c1") is None
    event, data = outbox.last("c2")
    assert event == "signInApproved"
    assert data["userId"] == "1234"
    assert data["user"]["nickname"] == "Alice"
    assert outbox.to("c1") == []
    assert arbiter.get(request.request_id) is None


def test_deny_keeps_the_original_session(arbiter, directory, outbox):
    request = arbiter.open("1234", "c2")
    outbox.clear()

    arbiter.deny(request.request_id, "c1")

    assert request.state is SignInState.DENIED
    assert directory.live_session("1234") == "c1"
    assert directory.resolve("c2") is None
    assert outbox.to("c2") == [("signInDenied", {})]
    assert len(arbiter) == 0


def test_unknown_request_is_not_found(arbiter):
    with pytest.raises(NotFound):
        arbiter.approve("nope", "c1")
    with pytest.raises(NotFound):
        arbiter.deny("nope", "c1")


def test_only_the_live_session_may_decide(arbiter, directory, outbox):
    directory.create_or_bind("5678", "c9", {})
    request = arbiter.open("1234", "c2")

    for stranger in ("c9", "c2", "unbound"):
        with pytest.raises(NotFound):
            arbiter.approve(request.request_id, stranger)
        with pytest.raises(NotFound):
            arbiter.deny(request.request_id, stranger)

    assert directory.live_session("1234") == "c1"
    assert directory.live_session("5678") == "c9"
    assert arbiter.get(request.request_id) is request


def test_a_request_resolves_only_once(arbiter):
    request = arbiter.open("1234", "c2")
    arbiter.approve(request.request_id, "c1")
    with pytest.raises(NotFound):
        arbiter.deny(request.request_id, "c2")


def test_requester_disconnect_drops_its_requests(arbiter):
    arbiter.open("1234", "c2")
    arbiter.open("1234", "c2")
    other = arbiter.open("1234", "c3")

    assert arbiter.drop_requester("c2") == 2
    assert [r.request_id for r in arbiter.pending_for("1234")] == [other.request_id]


def test_authorizer_disconnect_leaves_request_pending(arbiter, directory):
    request = arbiter.open("1234", "c2")
    directory.unbind("c1")
    assert arbiter.get(request.request_id) is request
    with pytest.raises(NotFound):
        arbiter.approve(request.request_id, "c1")


def test_open_for_offline_user_is_not_found(arbiter, directory):
    directory.unbind("c1")
    with pytest.raises(NotFound):
        arbiter.open("1234", "c2")
