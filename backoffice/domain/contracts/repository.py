"""Contract repository - Database operations for contracts and templates"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contract, ContractTemplate, User


def _ordering(model, order_by: str, order: str):
    column = model.updated_at if order_by == "updatedAt" else model.created_at
    return column.asc() if order == "asc" else column.desc()


class TemplateRepository:
    """Repository for contract template database operations"""

    @staticmethod
    def get_template_by_id(db: Session, template_id: str) -> Optional[ContractTemplate]:
        """Get a non-deleted template by ID"""
        return (
            db.query(ContractTemplate)
            .filter(ContractTemplate.id == template_id, ContractTemplate.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def find_by_name(
        db: Session, name: str, project_id: str, exclude_id: Optional[str] = None
    ) -> Optional[ContractTemplate]:
        """Find a live template with this name in the project"""
        query = db.query(ContractTemplate).filter(
            ContractTemplate.name == name,
            ContractTemplate.project_id == project_id,
            ContractTemplate.deleted_at.is_(None),
        )
        if exclude_id:
            query = query.filter(ContractTemplate.id != exclude_id)
        return query.first()

    @staticmethod
    def list_templates(
        db: Session,
        project_id: Optional[str],
        page: int,
        limit: int,
        order_by: str,
        order: str,
    ) -> tuple[list[ContractTemplate], int]:
        query = db.query(ContractTemplate).filter(ContractTemplate.deleted_at.is_(None))
        if project_id:
            query = query.filter(ContractTemplate.project_id == project_id)

        total = query.count()
        items = (
            query.order_by(_ordering(ContractTemplate, order_by, order))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def create_template(db: Session, **template_data) -> ContractTemplate:
        """Create a new template"""
        template = ContractTemplate(**template_data)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def update_template(db: Session, template: ContractTemplate, **updates) -> ContractTemplate:
        """Update a template with provided fields"""
        for key, value in updates.items():
            setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def soft_delete_template(db: Session, template: ContractTemplate) -> None:
        template.deleted_at = datetime.utcnow()
        db.commit()


class ContractRepository:
    """
    Repository for contract database operations

    Contract writes only add/flush; ContractService owns the commit so that
    the contract, project flag and customer activation land together.
    """

    @staticmethod
    def get_contract_by_id(db: Session, contract_id: str) -> Optional[Contract]:
        """Get a non-deleted contract by ID"""
        return (
            db.query(Contract)
            .filter(Contract.id == contract_id, Contract.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_contract_by_external_document_id(db: Session, document_id: str) -> Optional[Contract]:
        """Get the contract sent to the e-signature provider as document_id"""
        return (
            db.query(Contract)
            .filter(
                Contract.external_signature_document_id == document_id,
                Contract.deleted_at.is_(None),
            )
            .first()
        )

    @staticmethod
    def list_contracts(
        db: Session,
        filters: dict,
        page: int,
        limit: int,
        order_by: str,
        order: str,
    ) -> tuple[list[Contract], int]:
        query = db.query(Contract).filter(Contract.deleted_at.is_(None))
        if filters.get("project_id"):
            query = query.filter(Contract.project_id == filters["project_id"])
        if filters.get("customer_id"):
            query = query.filter(Contract.customer_id == filters["customer_id"])
        if filters.get("template_id"):
            query = query.filter(Contract.template_id == filters["template_id"])
        if filters.get("status"):
            query = query.filter(Contract.status == filters["status"])

        total = query.count()
        items = (
            query.order_by(_ordering(Contract, order_by, order))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def add_contract(db: Session, **contract_data) -> Contract:
        """Stage a new contract in the session"""
        contract = Contract(**contract_data)
        db.add(contract)
        db.flush()
        return contract

    @staticmethod
    def soft_delete_contract(db: Session, contract: Contract) -> None:
        contract.deleted_at = datetime.utcnow()
        db.flush()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get a user by ID"""
        return db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
