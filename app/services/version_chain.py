"""
Version chain store.

Every audit that has ever been rejected owns one row in `audit_version`
mapping it to the chain it belongs to (`first_audit_id`) and its position in
that chain. Audits without a row are implicitly version 1 of their own
singleton chain.
"""
import logging
from dataclasses import dataclass
from typing import List, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models.audit import AuditVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainInfo:
    """Position of one audit in its version chain."""
    audit_id: int
    first_audit_id: int
    version: int
    is_versioned: bool


class VersionChainStore:
    """Data access for the audit version chains."""

    def __init__(self, db: Session):
        self.db = db

    def record_first_version(self, audit_id: int) -> AuditVersion:
        """
        Register `audit_id` as version 1 of a new chain keyed by itself.

        Raises:
            ConflictError: If the audit already belongs to a chain
        """
        existing = self.db.query(AuditVersion).filter(AuditVersion.audit_id == audit_id).first()
        if existing is not None:
            raise ConflictError(
                f"Audit {audit_id} is already version {existing.audit_version} "
                f"of chain {existing.first_audit_id}"
            )

        row = AuditVersion(audit_id=audit_id, first_audit_id=audit_id, audit_version=1)
        self.db.add(row)
        # Flush so a concurrent duplicate fails here, inside the caller's transaction
        self.db.flush()
        logger.info(f"Started version chain {audit_id} (audit {audit_id} is version 1)")
        return row

    def record_next_version(self, first_audit_id: int, new_audit_id: int) -> AuditVersion:
        """
        Append `new_audit_id` to the chain as `max(version) + 1`.

        Raises:
            ValueError: If the chain has no rows yet (record_first_version must run first)
        """
        current_max = self.max_version(first_audit_id)
        if current_max is None:
            raise ValueError(
                f"Version chain {first_audit_id} does not exist; record the first version before appending"
            )

        row = AuditVersion(
            audit_id=new_audit_id,
            first_audit_id=first_audit_id,
            audit_version=current_max + 1,
        )
        self.db.add(row)
        self.db.flush()
        logger.info(f"Audit {new_audit_id} recorded as version {row.audit_version} of chain {first_audit_id}")
        return row

    def max_version(self, first_audit_id: int):
        """Highest version number of a chain, or None if the chain has no rows."""
        return (
            self.db.query(func.max(AuditVersion.audit_version))
            .filter(AuditVersion.first_audit_id == first_audit_id)
            .scalar()
        )

    def get_chain_info(self, audit_id: int) -> ChainInfo:
        """Chain row of an audit, or the unversioned sentinel (its own chain, version 1)."""
        row = self.db.query(AuditVersion).filter(AuditVersion.audit_id == audit_id).first()
        if row is None:
            return ChainInfo(audit_id=audit_id, first_audit_id=audit_id, version=1, is_versioned=False)
        return ChainInfo(
            audit_id=row.audit_id,
            first_audit_id=row.first_audit_id,
            version=row.audit_version,
            is_versioned=True,
        )

    def chain_rows(self, first_audit_id: int) -> List[AuditVersion]:
        """All rows of one chain, oldest version first."""
        return (
            self.db.query(AuditVersion)
            .filter(AuditVersion.first_audit_id == first_audit_id)
            .order_by(AuditVersion.audit_version.asc())
            .all()
        )

    def all_rows(self) -> List[AuditVersion]:
        return (
            self.db.query(AuditVersion)
            .order_by(AuditVersion.first_audit_id, AuditVersion.audit_version)
            .all()
        )

    @staticmethod
    def latest_version_ids_select():
        """SELECT of the audit_id holding MAX(audit_version) for every chain."""
        latest = (
            select(
                AuditVersion.first_audit_id.label("first_audit_id"),
                func.max(AuditVersion.audit_version).label("latest_version"),
            )
            .group_by(AuditVersion.first_audit_id)
            .subquery("latest")
        )
        return select(AuditVersion.audit_id).join(
            latest,
            (AuditVersion.first_audit_id == latest.c.first_audit_id)
            & (AuditVersion.audit_version == latest.c.latest_version),
        )

    @staticmethod
    def versioned_ids_select():
        """SELECT of every audit_id present in any chain."""
        return select(AuditVersion.audit_id)

    def latest_version_ids_for_all_chains(self) -> Set[int]:
        return set(self.db.execute(self.latest_version_ids_select()).scalars().all())

    def all_versioned_audit_ids(self) -> Set[int]:
        return set(self.db.execute(self.versioned_ids_select()).scalars().all())

    def is_latest_version(self, audit_id: int) -> bool:
        """True for unversioned audits and for the newest member of a chain."""
        info = self.get_chain_info(audit_id)
        if not info.is_versioned:
            return True
        return info.version == self.max_version(info.first_audit_id)

    def remove(self, audit_id: int) -> bool:
        """Delete the chain row of an audit. Returns False if it had none."""
        deleted = (
            self.db.query(AuditVersion)
            .filter(AuditVersion.audit_id == audit_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)
