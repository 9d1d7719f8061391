"""Project repository - Project lookups and the signed-contract flag"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contract, Project, ProjectScope

logger = logging.getLogger(__name__)


class ProjectRepository:
    """Repository for project database operations"""

    @staticmethod
    def get_project_by_id(db: Session, project_id: str) -> Optional[Project]:
        return (
            db.query(Project)
            .filter(Project.id == project_id, Project.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_scope_by_id(db: Session, scope_id: str) -> Optional[ProjectScope]:
        return (
            db.query(ProjectScope)
            .filter(ProjectScope.id == scope_id, ProjectScope.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def recompute_has_signed_contract(db: Session, project_id: str) -> bool:
        """
        Set has_signed_contract from the count of live signed contracts.

        Flushes but does not commit; the caller owns the transaction.
        """
        db.flush()
        signed_count = (
            db.query(Contract)
            .filter(
                Contract.project_id == project_id,
                Contract.status == "signed",
                Contract.deleted_at.is_(None),
            )
            .count()
        )
        has_signed = signed_count > 0
        db.query(Project).filter(Project.id == project_id).update(
            {Project.has_signed_contract: has_signed}, synchronize_session="fetch"
        )
        logger.debug(f"Project {project_id} has_signed_contract -> {has_signed}")
        return has_signed
