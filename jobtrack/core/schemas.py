"""
Pydantic schemas for job records, filters, drafts and users.

These schemas ensure:
1. Request bodies are validated before they reach the store
2. API responses share one wire shape (camelCase keys, ISO dates)
3. The client and the server apply the same required-field rule
"""

from datetime import datetime
from typing import Optional, Dict, Any, Union
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from jobtrack.core.dates import normalize_date


# ============================================================================
# Field metadata
# ============================================================================

# Editable fields by wire name, in table column order
JOB_FIELDS = ("position", "company", "phase", "cl", "status", "note", "appliedDate")

TEXT_FIELDS = ("position", "company", "phase", "note")
BOOLEAN_FIELDS = ("cl", "status")
DATE_FIELDS = ("appliedDate",)

REQUIRED_FIELDS = ("position", "company", "appliedDate")

FIELD_LABELS = {
    "position": "Position",
    "company": "Company",
    "phase": "Phase",
    "cl": "CL",
    "status": "Status",
    "note": "Note",
    "appliedDate": "Applied Date",
}

_WIRE_TO_ATTR = {
    "ownerId": "owner_id",
    "appliedDate": "applied_date",
}
_ATTR_TO_WIRE = {v: k for k, v in _WIRE_TO_ATTR.items()}


def to_attr(name: str) -> str:
    """Map a wire field name (``appliedDate``) to its attribute name."""
    return _WIRE_TO_ATTR.get(name, name)


def to_wire(name: str) -> str:
    """Map an attribute name (``applied_date``) to its wire field name."""
    return _ATTR_TO_WIRE.get(name, name)


def missing_required(fields: Dict[str, Any]) -> Dict[str, str]:
    """
    Apply the create-time required-field rule.

    Args:
        fields: Candidate record keyed by wire or attribute names

    Returns:
        Map of wire field name to error message, empty when valid
    """
    errors = {}
    for name in REQUIRED_FIELDS:
        value = fields.get(name, fields.get(to_attr(name)))
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = f"{FIELD_LABELS[name]} is required"
    return errors


def status_label(active: bool) -> str:
    """Presentation label for the status flag."""
    return "Active" if active else "Inactive"


def parse_status_label(label: str) -> bool:
    """Inverse of :func:`status_label`."""
    return str(label).strip().lower() == "active"


# ============================================================================
# Job records
# ============================================================================

class JobRecord(BaseModel):
    """One persisted job application entry."""

    id: str
    owner_id: str = Field(alias="ownerId")
    position: str
    company: str
    phase: str = ""
    cl: bool = False
    status: bool = True
    note: str = ""
    applied_date: str = Field(default="", alias="appliedDate")

    class Config:
        populate_by_name = True
        extra = "forbid"
        from_attributes = True

    @field_validator("phase", "note", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("applied_date", mode="before")
    @classmethod
    def _normalize_applied_date(cls, v):
        return normalize_date(v)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys."""
        return self.model_dump(by_alias=True)

    def get(self, name: str) -> Any:
        """Read a field by wire or attribute name."""
        return getattr(self, to_attr(name))


class JobCreate(BaseModel):
    """Body of ``POST /jobs``.

    Required fields default to empty so that missing ones are reported
    together by :func:`missing_required` rather than one at a time.
    """

    position: str = ""
    company: str = ""
    phase: str = ""
    cl: bool = False
    status: bool = True
    note: str = ""
    applied_date: str = Field(default="", alias="appliedDate")

    class Config:
        populate_by_name = True

    @field_validator("position", "company", "phase", "note", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("applied_date", mode="before")
    @classmethod
    def _normalize_applied_date(cls, v):
        return normalize_date(v)


class JobUpdate(BaseModel):
    """Body of ``PATCH /jobs/{id}``. Only supplied fields are merged.

    ``id`` and ``ownerId`` are accepted so a client may send a whole record
    back, but they are never applied.
    """

    id: Optional[str] = None
    owner_id: Optional[str] = Field(default=None, alias="ownerId")
    position: Optional[str] = None
    company: Optional[str] = None
    phase: Optional[str] = None
    cl: Optional[bool] = None
    status: Optional[bool] = None
    note: Optional[str] = None
    applied_date: Optional[str] = Field(default=None, alias="appliedDate")

    class Config:
        populate_by_name = True
        extra = "forbid"

    @field_validator("applied_date", mode="before")
    @classmethod
    def _normalize_applied_date(cls, v):
        return None if v is None else normalize_date(v)

    def changes(self) -> Dict[str, Any]:
        """Supplied, non-null fields keyed by attribute name."""
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        data.pop("id", None)
        data.pop("owner_id", None)
        return data


# ============================================================================
# Client-local state
# ============================================================================

class FilterSet(BaseModel):
    """Per-field constraints for the filtered view. Empty means unconstrained."""

    position: str = ""
    company: str = ""
    phase: str = ""
    cl: Optional[Union[bool, str]] = None
    status: Optional[Union[bool, str]] = None
    note: str = ""
    applied_date: str = Field(default="", alias="appliedDate")

    class Config:
        populate_by_name = True
        extra = "forbid"

    def active(self) -> Dict[str, Any]:
        """Constraints that are set, keyed by wire name."""
        result = {}
        for name in JOB_FIELDS:
            value = getattr(self, to_attr(name))
            if value is None or value == "":
                continue
            result[name] = value
        return result


class DraftState(str, Enum):
    """States of the add-new form."""

    EMPTY = "empty"
    DIRTY = "dirty"
    DIRTY_ERRORS = "dirty_errors"
    SUBMITTING = "submitting"


class DraftRecord(BaseModel):
    """In-progress new record. Same shape as JobRecord minus id/ownerId."""

    position: str = ""
    company: str = ""
    phase: str = ""
    cl: bool = False
    status: bool = True
    note: str = ""
    applied_date: str = Field(default="", alias="appliedDate")

    class Config:
        populate_by_name = True

    def is_empty(self) -> bool:
        return self == DraftRecord()


# ============================================================================
# Users
# ============================================================================

class UserRegister(BaseModel):
    """Body of ``POST /users/register``."""

    name: str = ""
    email: str = ""
    password: str = ""


class UserLogin(BaseModel):
    """Body of ``POST /users/login``."""

    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    """Public view of a user account."""

    id: str
    name: str = ""
    email: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True
        from_attributes = True


class AuthResponse(BaseModel):
    """Issued session."""

    user: UserOut
    token: str

