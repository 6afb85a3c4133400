"""
Job Store

Owner-partitioned persistence for job applications.

The store never exposes an unscoped query: callers obtain an
``OwnerJobs`` view with ``JobStore.for_owner(owner_id)`` and every read or
write goes through it. A record owned by someone else is indistinguishable
from a record that does not exist.
"""

import logging
from typing import List, Dict, Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobtrack.core.database import JobApplication
from jobtrack.core.dates import parse_date
from jobtrack.core.errors import NotFoundError, ValidationError
from jobtrack.core.schemas import JobRecord, JobCreate, JobUpdate, missing_required

logger = logging.getLogger(__name__)


class OwnerJobs:
    """All job applications of one owner."""

    def __init__(self, session: Session, owner_id: str):
        self.session = session
        self.owner_id = owner_id

    def _query(self):
        return (
            select(JobApplication)
            .where(JobApplication.owner_id == self.owner_id)
            .order_by(JobApplication.created_at, JobApplication.id)
        )

    def _get_row(self, job_id: str) -> JobApplication:
        row = self.session.execute(
            self._query().where(JobApplication.id == job_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return row

    def list(self) -> List[JobRecord]:
        """All records of this owner in creation order."""
        rows = self.session.execute(self._query()).scalars().all()
        return [row.to_record() for row in rows]

    def get(self, job_id: str) -> JobRecord:
        """
        Load one record.

        Raises:
            NotFoundError: if no record with this id belongs to the owner
        """
        return self._get_row(job_id).to_record()

    def create(self, fields: JobCreate) -> JobRecord:
        """
        Validate and persist a new record.

        Args:
            fields: Record fields; position, company and appliedDate required

        Returns:
            The stored record with its assigned id

        Raises:
            ValidationError: naming every empty required field
        """
        data = fields.model_dump()
        errors = missing_required(data)
        if errors:
            logger.warning(f"Rejected job for {self.owner_id}: missing {', '.join(errors)}")
            raise ValidationError(errors)

        row = JobApplication(
            owner_id=self.owner_id,
            position=data['position'].strip(),
            company=data['company'].strip(),
            phase=data['phase'],
            cl=data['cl'],
            status=data['status'],
            note=data['note'],
            applied_date=parse_date(data['applied_date']),
        )
        self.session.add(row)
        self.session.commit()

        logger.info(f"Created job {row.id} for {self.owner_id}: {row.position} @ {row.company}")
        return row.to_record()

    def update(self, job_id: str, changes: JobUpdate) -> JobRecord:
        """
        Merge the supplied fields into an existing record.

        Fields absent from ``changes`` are left as they are.

        Raises:
            NotFoundError: if no record with this id belongs to the owner
        """
        row = self._get_row(job_id)
        data: Dict[str, Any] = changes.changes()

        for name, value in data.items():
            if name == 'applied_date':
                value = parse_date(value)
            setattr(row, name, value)

        self.session.commit()

        logger.info(f"Updated job {job_id} ({', '.join(sorted(data)) or 'no fields'})")
        return row.to_record()

    def delete(self, job_id: str):
        """
        Remove a record permanently.

        Raises:
            NotFoundError: if no record with this id belongs to the owner
        """
        row = self._get_row(job_id)
        self.session.delete(row)
        self.session.commit()
        logger.info(f"Deleted job {job_id} for {self.owner_id}")


class JobStore:
    """Entry point to the job applications table."""

    def __init__(self, session: Session):
        self.session = session

    def for_owner(self, owner_id: Optional[str]) -> OwnerJobs:
        """Scope all further operations to one owner."""
        if not owner_id:
            raise ValueError("owner_id is required")
        return OwnerJobs(self.session, owner_id)
