from datetime import date, datetime

import pytest
from fastapi import HTTPException

from backoffice.domain.customers.service import CustomerService
from backoffice.models import CompanyPersonLink, Customer, CustomerPerson

TODAY = date(2026, 1, 10)


def _linked_person(db, company, name, cpf, **link_fields):
    customer = Customer(kind="PERSON", display_name=name)
    db.add(customer)
    db.flush()
    person = CustomerPerson(customer_id=customer.id, full_name=name, cpf=cpf)
    db.add(person)
    db.flush()
    db.add(CompanyPersonLink(company_id=company.id, person_id=person.id, **link_fields))
    return customer


def test_company_activation_includes_live_links_only(db, seed):
    company = seed["company"]
    future = _linked_person(db, company, "Futuro", "22222222222", ended_on=date(2026, 6, 1))
    ended = _linked_person(db, company, "Encerrado", "33333333333", ended_on=date(2026, 1, 1))
    removed = _linked_person(db, company, "Removido", "44444444444", deleted_at=datetime(2025, 12, 1))
    db.commit()

    result = CustomerService(db).activate_customer_cascade(seed["company_customer"].id, today=TODAY)
    db.commit()

    activated = result["activatedCustomerIds"]
    assert activated[0] == seed["company_customer"].id
    assert set(activated) == {seed["company_customer"].id, seed["person_customer"].id, future.id}

    db.expire_all()
    assert db.get(Customer, seed["person_customer"].id).is_active
    assert db.get(Customer, future.id).is_active
    assert not db.get(Customer, ended.id).is_active
    assert not db.get(Customer, removed.id).is_active


def test_person_activation_only_touches_itself(db, seed):
    result = CustomerService(db).activate_customer_cascade(seed["person_customer"].id, today=TODAY)
    assert result == {"activatedCustomerIds": [seed["person_customer"].id]}


def test_activation_is_idempotent(db, seed):
    service = CustomerService(db)
    first = service.activate_customer_cascade(seed["company_customer"].id, today=TODAY)
    second = service.activate_customer_cascade(seed["company_customer"].id, today=TODAY)
    assert first == second


def test_activation_does_not_commit(db, seed):
    CustomerService(db).activate_customer_cascade(seed["company_customer"].id, today=TODAY)
    db.rollback()
    assert not db.get(Customer, seed["company_customer"].id).is_active


def test_unknown_customer(db):
    with pytest.raises(HTTPException) as exc:
        CustomerService(db).activate_customer_cascade("missing")
    assert exc.value.status_code == 404
