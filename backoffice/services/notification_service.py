"""
Contract Notification Service
Handles in-app notifications and tracking updates for contract events
Both channels are triggered from the same event and are best-effort
"""

import logging
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import PROJECT_MANAGER_ROLE, TRACKING_API_KEY, TRACKING_API_URL, TRACKING_TIMEOUT_SECONDS
from ..models import Contract, Notification, Project, ProjectScope, User

logger = logging.getLogger(__name__)

EVENT_CREATED = "created"
EVENT_FINALIZED = "finalized"
EVENT_SIGNED = "signed"

TRACKING_BADGE = "INTERNO"

# event -> (in-app title, verb, tracking stage); created only emits tracking
CONTRACT_EVENTS = {
    EVENT_CREATED: (None, "criado", "contrato"),
    EVENT_FINALIZED: ("Contrato finalizado", "finalizado", "contrato-finalizado"),
    EVENT_SIGNED: ("Contrato assinado", "assinado", "contrato-assinado"),
}


def create_many(
    db: Session,
    user_ids: list[str],
    title: str,
    message: str,
    entity: Optional[str] = None,
    entity_id: Optional[str] = None,
) -> int:
    """Persist one in-app notification per recipient. Returns the number created."""
    if not user_ids:
        return 0

    for user_id in user_ids:
        db.add(
            Notification(
                user_id=user_id,
                title=title,
                message=message,
                entity=entity,
                entity_id=entity_id,
            )
        )
    db.commit()
    logger.info(f"🔔 Created {len(user_ids)} notification(s): {title}")
    return len(user_ids)


async def send_tracking_update(user_ids: list[str], payload: dict, message: str) -> bool:
    """
    Post a tracking update to the tracking API.

    Returns False (and logs) when the API is not configured or the call fails.
    """
    if not TRACKING_API_URL:
        logger.debug(f"ℹ️ Tracking API not configured, skipping update: {message}")
        return False

    headers = {"Content-Type": "application/json"}
    if TRACKING_API_KEY:
        headers["Authorization"] = f"Bearer {TRACKING_API_KEY}"

    body = {"userIds": user_ids, "tracking": payload, "message": message}

    try:
        async with httpx.AsyncClient(timeout=TRACKING_TIMEOUT_SECONDS) as client:
            response = await client.post(TRACKING_API_URL, json=body, headers=headers)
            response.raise_for_status()
        logger.info(f"📨 Tracking update sent to {len(user_ids)} user(s): {message}")
        return True
    except httpx.HTTPStatusError as e:
        logger.error(f"❌ Tracking API returned {e.response.status_code}: {e.response.text[:200]}")
    except httpx.RequestError as e:
        logger.error(f"❌ Tracking API request failed: {e}")
    return False


def collect_recipients(db: Session, project: Project, scope: Optional[ProjectScope]) -> list[str]:
    """Customer creator, project creator, scope author and project managers (unique, ordered)"""
    recipients: dict[str, None] = {}

    customer = project.customer
    if customer is not None and customer.created_by_id:
        recipients.setdefault(customer.created_by_id, None)
    if project.created_by_id:
        recipients.setdefault(project.created_by_id, None)
    if scope is not None and scope.user_id:
        recipients.setdefault(scope.user_id, None)

    managers = (
        db.query(User)
        .filter(User.role_name == PROJECT_MANAGER_ROLE, User.deleted_at.is_(None))
        .all()
    )
    for manager in managers:
        recipients.setdefault(manager.id, None)

    return list(recipients)


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_tracking_payload(contract: Contract, project: Project, scope: Optional[ProjectScope], stage: str) -> dict:
    customer = project.customer
    payload = {
        "projectId": project.id,
        "projectName": project.project_name or "Projeto",
        "customerName": customer.display_name if customer is not None else "Cliente",
        "scopeName": scope.name if scope is not None else None,
        "contractTitle": contract.title or "Contrato",
        "badge": TRACKING_BADGE,
        "currentStage": stage,
        "projectCreatedAt": _iso(project.created_at),
        "scopeCreatedAt": _iso(scope.created_at) if scope is not None else None,
        "scopeFinalizedAt": (
            _iso(scope.updated_at) if scope is not None and scope.status == "finalized" else None
        ),
        "contractCreatedAt": _iso(contract.created_at),
    }
    if stage == "contrato-finalizado":
        payload["contractFinalizedAt"] = _iso(contract.updated_at)
    if stage == "contrato-assinado":
        payload["contractSignedAt"] = _iso(contract.updated_at)
    return payload


async def notify_contract_event(db: Session, contract_id: str, event: str) -> dict:
    """
    Notify interested users about a contract event

    Only project contracts notify; collaborator contracts have no audience.

    Returns:
        Dict with notified user count and tracking status
    """
    result = {"notified": 0, "tracking_sent": False}

    if event not in CONTRACT_EVENTS:
        logger.warning(f"⚠️ Unknown contract event '{event}' for contract {contract_id}")
        return result

    contract = db.query(Contract).filter(Contract.id == contract_id).first()
    if not contract or not contract.project_id:
        return result

    project = db.query(Project).filter(Project.id == contract.project_id).first()
    if not project:
        return result

    scope = None
    if contract.scope_id:
        scope = db.query(ProjectScope).filter(ProjectScope.id == contract.scope_id).first()

    recipients = collect_recipients(db, project, scope)
    if not recipients:
        logger.debug(f"⚠️ No recipients for contract {contract.id} ({event})")
        return result

    title, verb, stage = CONTRACT_EVENTS[event]
    contract_title = contract.title or "Contrato"
    project_name = project.project_name or "Projeto"
    customer_name = project.customer.display_name if project.customer is not None else "Cliente"

    if title:
        result["notified"] = create_many(
            db,
            recipients,
            title,
            f'O contrato "{contract_title}" do projeto "{project_name}" '
            f'do cliente "{customer_name}" foi {verb}.',
            "contract",
            contract.id,
        )

    result["tracking_sent"] = await send_tracking_update(
        recipients,
        build_tracking_payload(contract, project, scope, stage),
        f'Contrato "{contract_title}" {verb}',
    )
    return result
