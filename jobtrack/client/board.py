"""
Job Board

Client-side state for the job table:
1. The authoritative local list of job records
2. The active filters and the derived filtered view
3. The add-new draft and its form state
4. The pending delete confirmation

All state lives in one ``BoardState`` value and only changes through
``reduce(state, action)``. ``JobBoard`` turns user intents into actions and
API calls: edits are applied optimistically, then either reconciled with
the server's record or reverted.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from jobtrack.client.api_client import JobTrackerClient
from jobtrack.core.dates import normalize_date
from jobtrack.core.errors import AuthError, JobTrackError, NotFoundError, ValidationError
from jobtrack.core.schemas import (
    BOOLEAN_FIELDS, DATE_FIELDS, JOB_FIELDS, DraftRecord, DraftState, FilterSet, JobRecord,
    missing_required, parse_status_label, to_attr
)
from jobtrack.services.filters import filter_jobs, parse_bool_filter

logger = logging.getLogger(__name__)


# ============================================================================
# Actions
# ============================================================================

class ActionType(str, Enum):
    """Everything that can change the board."""

    LOADED = "loaded"
    FIELD_EDITED = "field_edited"
    FIELD_REVERTED = "field_reverted"
    RECORD_RECONCILED = "record_reconciled"
    RECORD_ADDED = "record_added"
    RECORD_REMOVED = "record_removed"
    FILTER_CHANGED = "filter_changed"
    FILTERS_CLEARED = "filters_cleared"
    DRAFT_CHANGED = "draft_changed"
    DRAFT_REJECTED = "draft_rejected"
    DRAFT_SUBMITTING = "draft_submitting"
    DRAFT_FAILED = "draft_failed"
    DRAFT_RESET = "draft_reset"
    DELETE_REQUESTED = "delete_requested"
    DELETE_CANCELLED = "delete_cancelled"
    ERROR_RAISED = "error_raised"
    ERROR_DISMISSED = "error_dismissed"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class Action:
    type: ActionType
    payload: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# State
# ============================================================================

@dataclass(frozen=True)
class BoardState:
    """Snapshot of the board. Never mutated in place."""

    jobs: Tuple[JobRecord, ...] = ()
    filters: FilterSet = field(default_factory=FilterSet)
    draft: DraftRecord = field(default_factory=DraftRecord)
    draft_errors: Dict[str, str] = field(default_factory=dict)
    draft_state: DraftState = DraftState.EMPTY

    # (job_id, field) -> value before the optimistic edit
    pending_edits: Dict[Tuple[str, str], Any] = field(default_factory=dict)

    pending_delete: Optional[str] = None
    error: Optional[str] = None
    session_expired: bool = False

    def find(self, job_id: str) -> Optional[JobRecord]:
        for job in self.jobs:
            if job.id == job_id:
                return job
        return None

    def is_unsaved(self, job_id: str, name: str) -> bool:
        """True while an edit of this field has not been confirmed."""
        return (job_id, name) in self.pending_edits


class DraftStateMachine:
    """
    Valid transitions of the add-new form.

    EMPTY -> DIRTY (user types) | DIRTY_ERRORS (submit empty form)
    DIRTY -> DIRTY_ERRORS (validation fails) | SUBMITTING | EMPTY (cleared)
    DIRTY_ERRORS -> DIRTY (last error cleared) | SUBMITTING | EMPTY (cleared)
    SUBMITTING -> EMPTY (created) | DIRTY (call failed) | DIRTY_ERRORS (server rejected)
    """

    TRANSITIONS = {
        DraftState.EMPTY: [DraftState.DIRTY, DraftState.DIRTY_ERRORS],
        DraftState.DIRTY: [DraftState.DIRTY_ERRORS, DraftState.SUBMITTING, DraftState.EMPTY],
        DraftState.DIRTY_ERRORS: [DraftState.DIRTY, DraftState.SUBMITTING, DraftState.EMPTY],
        DraftState.SUBMITTING: [DraftState.EMPTY, DraftState.DIRTY, DraftState.DIRTY_ERRORS],
    }

    @classmethod
    def can_transition(cls, from_state: DraftState, to_state: DraftState) -> bool:
        """Check if transition is valid. Staying put is always valid."""
        if from_state == to_state:
            return True
        return to_state in cls.TRANSITIONS.get(from_state, [])

    @classmethod
    def transition(cls, from_state: DraftState, to_state: DraftState) -> DraftState:
        """Return the new state, or the old one if the move is invalid."""
        if cls.can_transition(from_state, to_state):
            return to_state
        logger.warning(f"Invalid draft transition: {from_state.value} -> {to_state.value}")
        return from_state


# ============================================================================
# Reducer
# ============================================================================

def _replace_job(jobs: Tuple[JobRecord, ...], job_id: str,
                 update: Callable[[JobRecord], JobRecord]) -> Tuple[JobRecord, ...]:
    return tuple(update(job) if job.id == job_id else job for job in jobs)


def _set_field(job: JobRecord, name: str, value: Any) -> JobRecord:
    return job.model_copy(update={to_attr(name): value})


def _draft_state_after_edit(draft: DraftRecord, errors: Dict[str, str]) -> DraftState:
    if errors:
        return DraftState.DIRTY_ERRORS
    if draft.is_empty():
        return DraftState.EMPTY
    return DraftState.DIRTY


def reduce(state: BoardState, action: Action) -> BoardState:
    """
    Apply one action to a state, returning the next state.

    Server records win on reconcile, except for fields that still have an
    unconfirmed local edit.
    """
    p = action.payload
    kind = action.type

    if kind == ActionType.LOADED:
        return replace(state, jobs=tuple(p["jobs"]), pending_edits={},
                       pending_delete=None, session_expired=False)

    if kind == ActionType.FIELD_EDITED:
        key = (p["job_id"], p["field"])
        pending = dict(state.pending_edits)
        pending.setdefault(key, p["previous"])
        jobs = _replace_job(state.jobs, p["job_id"],
                            lambda job: _set_field(job, p["field"], p["value"]))
        return replace(state, jobs=jobs, pending_edits=pending)

    if kind == ActionType.FIELD_REVERTED:
        key = (p["job_id"], p["field"])
        pending = dict(state.pending_edits)
        previous = pending.pop(key, p.get("previous"))
        jobs = state.jobs
        current = state.find(p["job_id"])
        # A later edit of the same field supersedes this one
        if current is not None and current.get(p["field"]) == p["value"]:
            jobs = _replace_job(jobs, p["job_id"],
                                lambda job: _set_field(job, p["field"], previous))
        return replace(state, jobs=jobs, pending_edits=pending)

    if kind == ActionType.RECORD_RECONCILED:
        record: JobRecord = p["record"]
        pending = dict(state.pending_edits)
        pending.pop((record.id, p.get("field")), None)
        local = state.find(record.id)
        merged = record
        if local is not None:
            keep = {to_attr(name): local.get(name)
                    for (job_id, name) in pending if job_id == record.id}
            if keep:
                merged = record.model_copy(update=keep)
        jobs = _replace_job(state.jobs, record.id, lambda job: merged)
        return replace(state, jobs=jobs, pending_edits=pending)

    if kind == ActionType.RECORD_ADDED:
        return replace(state, jobs=state.jobs + (p["record"],))

    if kind == ActionType.RECORD_REMOVED:
        job_id = p["job_id"]
        pending = {k: v for k, v in state.pending_edits.items() if k[0] != job_id}
        pending_delete = None if state.pending_delete == job_id else state.pending_delete
        return replace(
            state,
            jobs=tuple(job for job in state.jobs if job.id != job_id),
            pending_edits=pending,
            pending_delete=pending_delete,
        )

    if kind == ActionType.FILTER_CHANGED:
        filters = state.filters.model_copy(update={to_attr(p["field"]): p["value"]})
        return replace(state, filters=filters)

    if kind == ActionType.FILTERS_CLEARED:
        return replace(state, filters=FilterSet())

    if kind == ActionType.DRAFT_CHANGED:
        draft = state.draft.model_copy(update={to_attr(p["field"]): p["value"]})
        errors = {k: v for k, v in state.draft_errors.items() if k != p["field"]}
        draft_state = DraftStateMachine.transition(
            state.draft_state, _draft_state_after_edit(draft, errors)
        )
        return replace(state, draft=draft, draft_errors=errors, draft_state=draft_state)

    if kind == ActionType.DRAFT_REJECTED:
        draft_state = DraftStateMachine.transition(state.draft_state, DraftState.DIRTY_ERRORS)
        return replace(state, draft_errors=dict(p["errors"]), draft_state=draft_state)

    if kind == ActionType.DRAFT_SUBMITTING:
        draft_state = DraftStateMachine.transition(state.draft_state, DraftState.SUBMITTING)
        return replace(state, draft_errors={}, draft_state=draft_state)

    if kind == ActionType.DRAFT_FAILED:
        draft_state = DraftStateMachine.transition(state.draft_state, DraftState.DIRTY)
        return replace(state, draft_state=draft_state)

    if kind == ActionType.DRAFT_RESET:
        draft_state = DraftStateMachine.transition(state.draft_state, DraftState.EMPTY)
        return replace(state, draft=DraftRecord(), draft_errors={}, draft_state=draft_state)

    if kind == ActionType.DELETE_REQUESTED:
        return replace(state, pending_delete=p["job_id"])

    if kind == ActionType.DELETE_CANCELLED:
        return replace(state, pending_delete=None)

    if kind == ActionType.ERROR_RAISED:
        return replace(state, error=p["message"])

    if kind == ActionType.ERROR_DISMISSED:
        return replace(state, error=None)

    if kind == ActionType.SESSION_EXPIRED:
        return replace(state, session_expired=True, error=p.get("message"))

    raise ValueError(f"Unknown action: {kind}")


# ============================================================================
# Board
# ============================================================================

def coerce_field_value(name: str, value: Any) -> Any:
    """
    Convert a user-entered value to the canonical type of a field.

    Booleans accept ``True``/``False`` and labels (``"Active"``, ``"true"``);
    the applied date is normalized to ``YYYY-MM-DD``.
    """
    if name not in JOB_FIELDS:
        raise KeyError(f"Unknown job field: {name}")
    if name in BOOLEAN_FIELDS:
        if isinstance(value, bool):
            return value
        if name == "status" and str(value).strip().lower() in ("active", "inactive"):
            return parse_status_label(value)
        return bool(parse_bool_filter(value))
    if name in DATE_FIELDS:
        return normalize_date(value)
    return "" if value is None else str(value)


class JobBoard:
    """
    Mediates between the user and the API.

    Every user intent becomes one or more actions on the state plus at most
    one API call. Failures are recorded in ``state.error`` and re-raised.
    """

    HISTORY_LIMIT = 100

    def __init__(self, client: JobTrackerClient, state: Optional[BoardState] = None):
        self.client = client
        self.state = state or BoardState()
        self.history: List[Action] = []

    def dispatch(self, kind: ActionType, **payload) -> BoardState:
        action = Action(kind, payload)
        self.state = reduce(self.state, action)
        self.history.append(action)
        if len(self.history) > self.HISTORY_LIMIT:
            self.history = self.history[-self.HISTORY_LIMIT:]
        return self.state

    def _fail(self, error: JobTrackError):
        """Record an error on the board, expiring the session on AuthError."""
        if isinstance(error, AuthError):
            self.client.logout()
            self.dispatch(ActionType.SESSION_EXPIRED, message=error.message)
        else:
            self.dispatch(ActionType.ERROR_RAISED, message=error.message)

    # =========================================================================
    # Loading & Views
    # =========================================================================

    def load(self) -> List[JobRecord]:
        """Fetch the full list for the signed-in user."""
        try:
            jobs = self.client.list_jobs()
        except JobTrackError as e:
            self._fail(e)
            raise
        self.dispatch(ActionType.LOADED, jobs=jobs)
        logger.info(f"Loaded {len(jobs)} jobs")
        return list(self.state.jobs)

    @property
    def jobs(self) -> List[JobRecord]:
        return list(self.state.jobs)

    def filtered_jobs(self) -> List[JobRecord]:
        return filter_jobs(self.state.jobs, self.state.filters)

    def set_filter(self, name: str, value: Any):
        if name not in JOB_FIELDS:
            raise KeyError(f"Unknown filter field: {name}")
        self.dispatch(ActionType.FILTER_CHANGED, field=name, value=value)

    def clear_filters(self):
        self.dispatch(ActionType.FILTERS_CLEARED)

    def dismiss_error(self):
        self.dispatch(ActionType.ERROR_DISMISSED)

    def logout(self):
        """Drop the session token; the caller sends the user back to login."""
        self.client.logout()
        self.dispatch(ActionType.SESSION_EXPIRED, message=None)

    # =========================================================================
    # Editing
    # =========================================================================

    def edit_field(self, job_id: str, name: str, value: Any) -> JobRecord:
        """
        Change one field of an existing record.

        The local copy changes immediately; the update call carries only
        this field. On failure the field is reverted and the error re-raised.
        """
        job = self.state.find(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")

        value = coerce_field_value(name, value)
        previous = job.get(name)
        self.dispatch(ActionType.FIELD_EDITED, job_id=job_id, field=name,
                      value=value, previous=previous)

        try:
            record = self.client.update_job(job_id, {name: value})
        except NotFoundError as e:
            logger.warning(f"Job {job_id} vanished on the server")
            self.dispatch(ActionType.RECORD_REMOVED, job_id=job_id)
            self._fail(e)
            raise
        except JobTrackError as e:
            logger.warning(f"Reverting {name} of job {job_id}: {e.message}")
            self.dispatch(ActionType.FIELD_REVERTED, job_id=job_id, field=name,
                          value=value, previous=previous)
            self._fail(e)
            raise

        self.dispatch(ActionType.RECORD_RECONCILED, record=record, field=name)
        return self.state.find(job_id)

    # =========================================================================
    # Deleting (two-step)
    # =========================================================================

    def request_delete(self, job_id: str) -> JobRecord:
        """Open the confirmation for deleting a record. Nothing is deleted yet."""
        job = self.state.find(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        self.dispatch(ActionType.DELETE_REQUESTED, job_id=job_id)
        return job

    def cancel_delete(self):
        self.dispatch(ActionType.DELETE_CANCELLED)

    def confirm_delete(self) -> Optional[str]:
        """
        Delete the record awaiting confirmation.

        Returns:
            The deleted id, or None if no delete was requested
        """
        job_id = self.state.pending_delete
        if job_id is None:
            return None

        try:
            self.client.delete_job(job_id)
        except NotFoundError as e:
            self.dispatch(ActionType.RECORD_REMOVED, job_id=job_id)
            self._fail(e)
            raise
        except JobTrackError as e:
            self.dispatch(ActionType.DELETE_CANCELLED)
            self._fail(e)
            raise

        self.dispatch(ActionType.RECORD_REMOVED, job_id=job_id)
        logger.info(f"Deleted job {job_id}")
        return job_id

    # =========================================================================
    # Draft (add new)
    # =========================================================================

    def change_draft(self, name: str, value: Any):
        """Set a draft field and clear that field's error."""
        self.dispatch(ActionType.DRAFT_CHANGED, field=name,
                      value=coerce_field_value(name, value))

    def submit_draft(self) -> JobRecord:
        """
        Validate and create the draft.

        Raises:
            ValidationError: if required fields are empty (no API call is
                made) or the server rejects the record
        """
        errors = missing_required(self.state.draft.model_dump())
        if errors:
            self.dispatch(ActionType.DRAFT_REJECTED, errors=errors)
            raise ValidationError(errors)

        self.dispatch(ActionType.DRAFT_SUBMITTING)
        try:
            record = self.client.create_job(self.state.draft.model_dump())
        except ValidationError as e:
            if e.errors:
                self.dispatch(ActionType.DRAFT_REJECTED, errors=e.errors)
            else:
                self.dispatch(ActionType.DRAFT_FAILED)
                self._fail(e)
            raise
        except JobTrackError as e:
            self.dispatch(ActionType.DRAFT_FAILED)
            self._fail(e)
            raise

        self.dispatch(ActionType.RECORD_ADDED, record=record)
        self.dispatch(ActionType.DRAFT_RESET)
        logger.info(f"Added job {record.id}: {record.position} @ {record.company}")
        return record
