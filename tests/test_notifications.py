import asyncio

from backoffice.domain.contracts.schemas import ContractCreate
from backoffice.models import Notification
from backoffice.services import notification_dispatcher
from backoffice.services.notification_service import notify_contract_event

from .conftest import RecordingDispatcher


def _project_contract(service, seed):
    return service.create_contract(
        ContractCreate(
            projectId=seed["project"].id,
            customerId=seed["company_customer"].id,
            templateId=seed["standard_template"].id,
            scopeId=seed["scope"].id,
        )
    )


def test_signed_event_notifies_unique_recipients(db, service, seed):
    contract = _project_contract(service, seed)

    result = asyncio.run(notify_contract_event(db, contract.id, "signed"))

    assert result == {"notified": 2, "tracking_sent": False}
    rows = db.query(Notification).order_by(Notification.user_id).all()
    assert {row.user_id for row in rows} == {seed["author"].id, seed["manager"].id}
    assert all(row.title == "Contrato assinado" for row in rows)
    assert all(row.entity_id == contract.id for row in rows)
    assert 'O contrato "Contrato Padrão - Acme Ltda"' in rows[0].message


def test_created_event_only_sends_tracking(db, service, seed):
    contract = _project_contract(service, seed)
    result = asyncio.run(notify_contract_event(db, contract.id, "created"))
    assert result["notified"] == 0
    assert db.query(Notification).count() == 0


def test_unknown_event_and_collaborator_contract(db, service, seed):
    contract = service.create_contract(
        ContractCreate(collaboratorId=seed["collaborator"].id, templateId=seed["standard_template"].id)
    )
    assert asyncio.run(notify_contract_event(db, contract.id, "signed"))["notified"] == 0
    assert asyncio.run(notify_contract_event(db, contract.id, "archived"))["notified"] == 0


def test_flush_delivers_and_clears():
    dispatcher = RecordingDispatcher()
    dispatcher.schedule("created", "c-1")
    dispatcher.schedule("signed", "c-1")

    asyncio.run(dispatcher.flush())

    assert dispatcher.delivered == [("created", "c-1"), ("signed", "c-1")]
    assert dispatcher.pending == []


def test_flush_respects_disabled_notifications(monkeypatch):
    monkeypatch.setattr(notification_dispatcher, "NOTIFICATIONS_ENABLED", False)
    dispatcher = RecordingDispatcher()
    dispatcher.schedule("signed", "c-1")

    asyncio.run(dispatcher.flush())

    assert dispatcher.delivered == []
    assert dispatcher.pending == []


def test_delivery_failures_are_swallowed():
    class FailingDispatcher(RecordingDispatcher):
        async def deliver(self, event, contract_id):
            if event == "created":
                raise ConnectionError("redis down")
            await super().deliver(event, contract_id)

    dispatcher = FailingDispatcher()
    dispatcher.schedule("created", "c-1")
    dispatcher.schedule("signed", "c-1")

    asyncio.run(dispatcher.flush())

    assert dispatcher.delivered == [("signed", "c-1")]
