"""Customer repository - Database operations for customers"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import CompanyPersonLink, Customer, CustomerCompany, CustomerPerson


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: str) -> Optional[Customer]:
        """Get a customer by ID"""
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def get_customer_tree(db: Session, customer_id: str) -> Optional[Customer]:
        """Get a customer with person/company, addresses and linked persons loaded"""
        return (
            db.query(Customer)
            .options(
                selectinload(Customer.person).selectinload(CustomerPerson.addresses),
                selectinload(Customer.company).selectinload(CustomerCompany.addresses),
                selectinload(Customer.company)
                .selectinload(CustomerCompany.links)
                .selectinload(CompanyPersonLink.person)
                .selectinload(CustomerPerson.addresses),
            )
            .filter(Customer.id == customer_id)
            .first()
        )

    @staticmethod
    def get_company_by_customer_id(db: Session, customer_id: str) -> Optional[CustomerCompany]:
        return db.query(CustomerCompany).filter(CustomerCompany.customer_id == customer_id).first()

    @staticmethod
    def get_linked_person_customer_ids(db: Session, company_id: str, today: date) -> list[str]:
        """Customer IDs of persons linked to a company through live links"""
        rows = (
            db.query(CustomerPerson.customer_id)
            .join(CompanyPersonLink, CompanyPersonLink.person_id == CustomerPerson.id)
            .filter(
                CompanyPersonLink.company_id == company_id,
                CompanyPersonLink.deleted_at.is_(None),
                or_(CompanyPersonLink.ended_on.is_(None), CompanyPersonLink.ended_on > today),
            )
            .all()
        )
        return [row[0] for row in rows if row[0]]

    @staticmethod
    def activate_customers(db: Session, customer_ids: list[str]) -> None:
        """Set is_active on the given customers (no commit)"""
        if not customer_ids:
            return
        db.query(Customer).filter(Customer.id.in_(customer_ids)).update(
            {Customer.is_active: True}, synchronize_session="fetch"
        )
