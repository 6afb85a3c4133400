"""
Tests for the client-side board: reducer, optimistic edits, two-step
delete and the add-new form state machine.
"""

from unittest.mock import MagicMock

import pytest

from jobtrack.client.api_client import JobTrackerClient
from jobtrack.client.board import (
    ActionType, Action, BoardState, DraftStateMachine, JobBoard, coerce_field_value, reduce
)
from jobtrack.core.errors import AuthError, NotFoundError, TransportError, ValidationError
from jobtrack.core.schemas import DraftState, FilterSet


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def api():
    return MagicMock(spec=JobTrackerClient)


@pytest.fixture
def board(api, make_job):
    api.list_jobs.return_value = [
        make_job(id="1", position="Backend Engineer", company="Acme"),
        make_job(id="2", position="Data Scientist", company="Globex", status=False),
    ]
    board = JobBoard(api)
    board.load()
    return board


@pytest.fixture
def live_board(client, database):
    """Board talking to the real API through the test client."""
    api = JobTrackerClient(base_url="", session=client)
    api.register("dana@example.com", "pw", "Dana")
    board = JobBoard(api)
    board.load()
    return board


# ============================================================================
# Reducer
# ============================================================================

def test_reducer_never_mutates_the_input_state(make_job):
    state = BoardState(jobs=(make_job(id="1"),))
    after = reduce(state, Action(ActionType.FIELD_EDITED, {
        "job_id": "1", "field": "company", "value": "Initech", "previous": "Acme"
    }))

    assert state.jobs[0].company == "Acme"
    assert after.jobs[0].company == "Initech"
    assert after.is_unsaved("1", "company")


def test_reconcile_keeps_other_unconfirmed_fields(make_job):
    state = BoardState(jobs=(make_job(id="1"),))
    for field, value, previous in [("company", "Initech", "Acme"), ("note", "local", "")]:
        state = reduce(state, Action(ActionType.FIELD_EDITED, {
            "job_id": "1", "field": field, "value": value, "previous": previous
        }))

    server = make_job(id="1", company="Initech", note="", phase="Server phase")
    state = reduce(state, Action(ActionType.RECORD_RECONCILED, {"record": server, "field": "company"}))

    job = state.find("1")
    assert job.company == "Initech"
    assert job.phase == "Server phase"
    assert job.note == "local"
    assert not state.is_unsaved("1", "company")
    assert state.is_unsaved("1", "note")


def test_revert_skips_superseded_edit(make_job):
    state = BoardState(jobs=(make_job(id="1", company="Later"),),
                       pending_edits={("1", "company"): "Acme"})
    state = reduce(state, Action(ActionType.FIELD_REVERTED, {
        "job_id": "1", "field": "company", "value": "Earlier", "previous": "Acme"
    }))
    assert state.find("1").company == "Later"
    assert state.pending_edits == {}


def test_draft_state_machine_rejects_invalid_moves():
    assert DraftStateMachine.can_transition(DraftState.EMPTY, DraftState.DIRTY)
    assert not DraftStateMachine.can_transition(DraftState.EMPTY, DraftState.SUBMITTING)
    assert DraftStateMachine.can_transition(DraftState.DIRTY_ERRORS, DraftState.EMPTY)
    assert DraftStateMachine.transition(DraftState.EMPTY, DraftState.SUBMITTING) == DraftState.EMPTY


@pytest.mark.parametrize("field, value, expected", [
    ("status", "Inactive", False),
    ("status", "Active", True),
    ("cl", "true", True),
    ("cl", "", False),
    ("cl", True, True),
    ("appliedDate", "2024-02-03T00:00:00Z", "2024-02-03"),
    ("note", None, ""),
])
def test_coerce_field_value(field, value, expected):
    assert coerce_field_value(field, value) == expected


def test_coerce_unknown_field():
    with pytest.raises(KeyError):
        coerce_field_value("salary", 1)


# ============================================================================
# Loading & Filters
# ============================================================================

def test_load_and_filter(board):
    assert [j.id for j in board.jobs] == ["1", "2"]

    board.set_filter("status", "inactive")
    assert [j.id for j in board.filtered_jobs()] == ["2"]

    board.set_filter("company", "ACME")
    assert board.filtered_jobs() == []

    board.clear_filters()
    assert board.state.filters == FilterSet()
    assert board.filtered_jobs() == board.jobs


def test_load_auth_failure_expires_session(api):
    api.list_jobs.side_effect = AuthError("expired")
    board = JobBoard(api)

    with pytest.raises(AuthError):
        board.load()

    api.logout.assert_called_once()
    assert board.state.session_expired


# ============================================================================
# Optimistic Edits
# ============================================================================

def test_edit_sends_single_field_and_reconciles(board, api, make_job):
    api.update_job.return_value = make_job(id="1", position="Backend Engineer",
                                           company="Acme", status=False)

    job = board.edit_field("1", "status", "Inactive")

    api.update_job.assert_called_once_with("1", {"status": False})
    assert job.status is False
    assert board.state.pending_edits == {}


def test_edit_failure_reverts_and_surfaces(board, api):
    api.update_job.side_effect = TransportError("connection reset")

    with pytest.raises(TransportError):
        board.edit_field("1", "company", "Initech")

    assert board.state.find("1").company == "Acme"
    assert board.state.pending_edits == {}
    assert board.state.error == "connection reset"

    board.dismiss_error()
    assert board.state.error is None


def test_edit_of_vanished_record_drops_it(board, api):
    api.update_job.side_effect = NotFoundError("gone")

    with pytest.raises(NotFoundError):
        board.edit_field("1", "note", "hello")

    assert board.state.find("1") is None
    assert board.state.find("2") is not None
    assert board.state.error == "gone"


def test_edit_with_expired_session_logs_out(board, api):
    api.update_job.side_effect = AuthError("expired")

    with pytest.raises(AuthError):
        board.edit_field("1", "phase", "Offer")

    assert board.state.find("1").phase == "Applied"
    api.logout.assert_called_once()
    assert board.state.session_expired


def test_edit_unknown_local_record(board, api):
    with pytest.raises(NotFoundError):
        board.edit_field("nope", "note", "x")
    api.update_job.assert_not_called()


# ============================================================================
# Delete
# ============================================================================

def test_delete_needs_confirmation(board, api):
    board.request_delete("1")
    api.delete_job.assert_not_called()
    assert board.state.pending_delete == "1"

    board.cancel_delete()
    assert board.state.pending_delete is None
    assert board.confirm_delete() is None
    api.delete_job.assert_not_called()

    board.request_delete("1")
    assert board.confirm_delete() == "1"
    api.delete_job.assert_called_once_with("1")
    assert [j.id for j in board.jobs] == ["2"]


def test_delete_failure_keeps_record(board, api):
    api.delete_job.side_effect = TransportError("timeout")
    board.request_delete("2")

    with pytest.raises(TransportError):
        board.confirm_delete()

    assert board.state.find("2") is not None
    assert board.state.pending_delete is None


# ============================================================================
# Draft
# ============================================================================

def test_invalid_draft_never_calls_create(board, api):
    board.change_draft("company", "Initech")

    with pytest.raises(ValidationError) as exc_info:
        board.submit_draft()

    api.create_job.assert_not_called()
    assert exc_info.value.errors == {
        "position": "Position is required",
        "appliedDate": "Applied Date is required",
    }
    assert board.state.draft_state == DraftState.DIRTY_ERRORS


def test_clearing_flagged_fields_returns_draft_to_empty(board, api):
    with pytest.raises(ValidationError):
        board.submit_draft()
    assert board.state.draft_state == DraftState.DIRTY_ERRORS

    for field in ("position", "company", "appliedDate"):
        board.change_draft(field, "")

    assert board.state.draft_errors == {}
    assert board.state.draft.is_empty()
    assert board.state.draft_state == DraftState.EMPTY
    api.create_job.assert_not_called()


def test_draft_state_walk(board, api, make_job):
    assert board.state.draft_state == DraftState.EMPTY

    board.change_draft("position", "SRE")
    assert board.state.draft_state == DraftState.DIRTY

    with pytest.raises(ValidationError):
        board.submit_draft()
    assert board.state.draft_state == DraftState.DIRTY_ERRORS
    assert set(board.state.draft_errors) == {"company", "appliedDate"}

    board.change_draft("company", "Initech")
    assert set(board.state.draft_errors) == {"appliedDate"}
    assert board.state.draft_state == DraftState.DIRTY_ERRORS

    board.change_draft("appliedDate", "2024-04-01")
    assert board.state.draft_errors == {}
    assert board.state.draft_state == DraftState.DIRTY

    created = make_job(id="3", position="SRE", company="Initech", applied_date="2024-04-01")
    api.create_job.return_value = created
    assert board.submit_draft() == created

    sent = api.create_job.call_args.args[0]
    assert sent["position"] == "SRE"
    assert sent["applied_date"] == "2024-04-01"
    assert board.jobs[-1] == created
    assert board.state.draft.is_empty()
    assert board.state.draft_state == DraftState.EMPTY


def test_draft_create_failure_keeps_draft(board, api):
    for field, value in [("position", "SRE"), ("company", "Initech"), ("appliedDate", "2024-04-01")]:
        board.change_draft(field, value)
    api.create_job.side_effect = TransportError("down")

    with pytest.raises(TransportError):
        board.submit_draft()

    assert board.state.draft.position == "SRE"
    assert board.state.draft_state == DraftState.DIRTY
    assert len(board.jobs) == 2


def test_history_is_bounded(board):
    for _ in range(JobBoard.HISTORY_LIMIT + 10):
        board.dismiss_error()
    assert len(board.history) == JobBoard.HISTORY_LIMIT


# ============================================================================
# Against the real API
# ============================================================================

def test_live_round_trip(live_board):
    for field, value in [("position", "SWE"), ("company", "Acme"), ("appliedDate", "2024-01-01")]:
        live_board.change_draft(field, value)
    created = live_board.submit_draft()

    live_board.edit_field(created.id, "status", False)
    live_board.load()
    assert live_board.jobs[0].status is False
    assert live_board.jobs[0].company == "Acme"

    live_board.request_delete(created.id)
    live_board.confirm_delete()
    live_board.load()
    assert live_board.jobs == []


def test_live_edit_after_server_delete(live_board):
    for field, value in [("position", "SWE"), ("company", "Acme"), ("appliedDate", "2024-01-01")]:
        live_board.change_draft(field, value)
    created = live_board.submit_draft()
    live_board.client.delete_job(created.id)

    with pytest.raises(NotFoundError):
        live_board.edit_field(created.id, "note", "stale")
    assert live_board.jobs == []
