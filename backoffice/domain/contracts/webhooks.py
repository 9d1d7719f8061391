"""
E-signature Webhook Handler
Marks contracts as signed when the customer signs the document
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from ...config import SIGNATURE_WEBHOOK_SECRET
from ...webhook_security import verify_signature_webhook
from .router import get_contract_service
from .schemas import SignatureWebhookResponse
from .service import ContractService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts/webhook", tags=["webhooks"])


@router.post("/signature", response_model=SignatureWebhookResponse)
async def handle_signature_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    service: ContractService = Depends(get_contract_service),
):
    """
    Handle e-signature provider events

    Events handled:
    - signature.accepted - a signer accepted (document id in data.document)
    - document.finished - every signer is done (document id in data.id)

    Events signed by internal staff, for unknown documents or for contracts
    already signed are acknowledged and ignored.
    """
    _, raw_body = await verify_signature_webhook(request, SIGNATURE_WEBHOOK_SECRET)

    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        logger.warning("⚠️ Signature webhook body is not valid JSON")
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    result = service.handle_signature_webhook(payload)
    logger.info(f"📨 Signature webhook processed: {result['status']}")

    background_tasks.add_task(service.dispatcher.flush)
    return SignatureWebhookResponse(status=result["status"], contractId=result.get("contractId"))
