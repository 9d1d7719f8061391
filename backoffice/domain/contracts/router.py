"""Contract router - FastAPI endpoints for contract templates and contracts"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Contract, ContractTemplate, User
from ...services.notification_dispatcher import NotificationDispatcher
from .schemas import (
    ContractCreate,
    ContractListResponse,
    ContractPreviewRequest,
    ContractPreviewResponse,
    ContractResponse,
    ContractStatus,
    ContractTemplateCreate,
    ContractTemplateListResponse,
    ContractTemplateResponse,
    ContractTemplateUpdate,
    ContractUpdate,
    OrderBy,
    OrderDirection,
)
from .service import ContractService, ContractTemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contracts"])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def get_notification_dispatcher() -> NotificationDispatcher:
    """One dispatcher per request; flushed after the response is sent"""
    return NotificationDispatcher()


def get_contract_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ContractService:
    """Dependency injection for ContractService"""
    return ContractService(db, dispatcher=dispatcher)


def get_template_service(db: Session = Depends(get_db)) -> ContractTemplateService:
    """Dependency injection for ContractTemplateService"""
    return ContractTemplateService(db)


def template_to_response(template: ContractTemplate) -> ContractTemplateResponse:
    return ContractTemplateResponse(
        id=template.id,
        projectId=template.project_id,
        userId=template.user_id,
        name=template.name,
        description=template.description,
        templateHtml=template.template_html,
        createdAt=template.created_at,
        updatedAt=template.updated_at,
    )


def contract_to_response(contract: Contract) -> ContractResponse:
    return ContractResponse(
        id=contract.id,
        projectId=contract.project_id,
        customerId=contract.customer_id,
        collaboratorId=contract.collaborator_id,
        templateId=contract.template_id,
        scopeId=contract.scope_id,
        createdBy=contract.created_by,
        title=contract.title,
        status=contract.status,
        isLocked=contract.is_locked,
        externalSignatureDocumentId=contract.external_signature_document_id,
        templateHtmlSnapshot=contract.template_html_snapshot,
        scopeHtmlSnapshot=contract.scope_html_snapshot,
        contractHtml=contract.contract_html,
        variables=contract.variables_json,
        unresolvedPlaceholders=contract.unresolved_placeholders or [],
        monthlyValue=contract.monthly_value,
        monthsCount=contract.months_count,
        firstPaymentDay=contract.first_payment_day,
        projectName=contract.project.project_name if contract.project else None,
        customerName=contract.customer.display_name if contract.customer else None,
        templateName=contract.template.name if contract.template else None,
        createdAt=contract.created_at,
        updatedAt=contract.updated_at,
    )


# ============================================================================
# TEMPLATES
# ============================================================================


@router.post("/templates", response_model=ContractTemplateResponse, status_code=201)
async def create_template(
    data: ContractTemplateCreate,
    current_user: Optional[User] = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    """Create a contract template"""
    template = service.create_template(data, current_user.id if current_user else None)
    return template_to_response(template)


@router.get("/templates", response_model=ContractTemplateListResponse)
async def list_templates(
    service: ContractTemplateService = Depends(get_template_service),
    project_id: Optional[str] = Query(None, alias="projectId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_by: OrderBy = Query("createdAt", alias="orderBy"),
    order: OrderDirection = Query("desc"),
):
    """List contract templates"""
    result = service.list_templates(project_id, page, limit, order_by, order)
    return ContractTemplateListResponse(
        data=[template_to_response(t) for t in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/templates/{template_id}", response_model=ContractTemplateResponse)
async def get_template(
    template_id: str,
    service: ContractTemplateService = Depends(get_template_service),
):
    return template_to_response(service.get_template(template_id))


@router.patch("/templates/{template_id}", response_model=ContractTemplateResponse)
async def update_template(
    template_id: str,
    data: ContractTemplateUpdate,
    service: ContractTemplateService = Depends(get_template_service),
):
    return template_to_response(service.update_template(template_id, data))


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: str,
    service: ContractTemplateService = Depends(get_template_service),
):
    return service.delete_template(template_id)


# ============================================================================
# CONTRACTS
# ============================================================================


@router.post("/preview", response_model=ContractPreviewResponse)
async def preview_contract(
    data: ContractPreviewRequest,
    service: ContractService = Depends(get_contract_service),
):
    """Render a contract without saving it"""
    return ContractPreviewResponse(**service.preview_contract(data))


@router.post("", response_model=ContractResponse, status_code=201)
async def create_contract(
    data: ContractCreate,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_current_user),
    service: ContractService = Depends(get_contract_service),
):
    """Render a template into a new draft contract"""
    contract = service.create_contract(data, current_user.id if current_user else None)
    background_tasks.add_task(service.dispatcher.flush)
    return contract_to_response(contract)


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    service: ContractService = Depends(get_contract_service),
    project_id: Optional[str] = Query(None, alias="projectId"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    template_id: Optional[str] = Query(None, alias="templateId"),
    status: Optional[ContractStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_by: OrderBy = Query("createdAt", alias="orderBy"),
    order: OrderDirection = Query("desc"),
):
    """List contracts"""
    result = service.list_contracts(
        project_id=project_id,
        customer_id=customer_id,
        template_id=template_id,
        status=status,
        page=page,
        limit=limit,
        order_by=order_by,
        order=order,
    )
    return ContractListResponse(
        data=[contract_to_response(c) for c in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_response(service.get_contract(contract_id))


@router.patch("/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: str,
    data: ContractUpdate,
    background_tasks: BackgroundTasks,
    service: ContractService = Depends(get_contract_service),
):
    """Update a contract (re-render, manual HTML, status or lock changes)"""
    contract = service.update_contract(contract_id, data)
    background_tasks.add_task(service.dispatcher.flush)
    return contract_to_response(contract)


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: str,
    service: ContractService = Depends(get_contract_service),
):
    return service.delete_contract(contract_id)


@router.get("/{contract_id}/pdf")
async def download_contract_pdf(
    contract_id: str,
    service: ContractService = Depends(get_contract_service),
):
    """Export the contract HTML as a PDF"""
    pdf, filename = await service.export_contract_pdf(contract_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{contract_id}/docx")
async def download_contract_docx(
    contract_id: str,
    service: ContractService = Depends(get_contract_service),
):
    """Export the contract HTML as a Word document"""
    content, filename = service.export_contract_docx(contract_id)
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
