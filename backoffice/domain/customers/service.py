"""Customer service - Activation cascade used by contract signing"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .repository import CustomerRepository

logger = logging.getLogger(__name__)


class CustomerService:
    """Service layer for customer aggregate operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def activate_customer_cascade(self, customer_id: str, today: Optional[date] = None) -> dict:
        """
        Activate a customer and, for companies, the persons linked to it.

        Links count when they are not deleted and not ended (ended_on empty or
        in the future). Idempotent. Runs inside the caller's transaction and
        never commits.

        Returns:
            {"activatedCustomerIds": [...]}, root customer first
        """
        customer = self.repo.get_customer_by_id(self.db, customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

        ids_to_activate: dict[str, None] = {customer_id: None}

        if customer.kind == "COMPANY":
            company = self.repo.get_company_by_customer_id(self.db, customer_id)
            if company:
                for person_customer_id in self.repo.get_linked_person_customer_ids(
                    self.db, company.id, today or date.today()
                ):
                    ids_to_activate.setdefault(person_customer_id, None)

        activated = list(ids_to_activate)
        self.repo.activate_customers(self.db, activated)
        logger.info(f"✅ Activated customers {activated} (root {customer_id})")

        return {"activatedCustomerIds": activated}
