"""Contract service - Rendering and lifecycle of contract documents"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import INTERNAL_SIGNER_DOMAIN_MARKER, load_software_tiers
from ...models import Contract, ContractTemplate, Customer, Project, ProjectScope, User
from ...services.document_renderer import PdfRenderError, build_printable_html, html_to_pdf
from ...services.docx_renderer import DocxRenderError, html_to_docx
from ...services.notification_dispatcher import NotificationDispatcher
from ...services.notification_service import EVENT_CREATED, EVENT_FINALIZED, EVENT_SIGNED
from ...utils.sanitization import sanitize_string
from ..customers.repository import CustomerRepository
from ..customers.service import CustomerService
from ..projects.repository import ProjectRepository
from .auto_placeholders import build_auto_placeholders, has_person_available
from .placeholders import extract_placeholder_keys, filter_optional_person_keys, render
from .repository import ContractRepository, TemplateRepository
from .schemas import (
    ContractCreate,
    ContractPreviewRequest,
    ContractTemplateCreate,
    ContractTemplateUpdate,
    ContractUpdate,
)
from .software import (
    DEFAULT_SOFTWARE_TIERS,
    SoftwareTier,
    has_payment_terms,
    is_software_template,
    process_software_contract_html,
)

logger = logging.getLogger(__name__)

SIGNATURE_EVENT_ACCEPTED = "signature.accepted"
SIGNATURE_EVENT_FINISHED = "document.finished"


def validation_error(message: str, field: str, **extra) -> HTTPException:
    return HTTPException(status_code=400, detail={"message": message, "field": field, **extra})


def conflict_error(message: str, field: str) -> HTTPException:
    return HTTPException(status_code=409, detail={"message": message, "field": field})


def build_pagination(page: int, limit: int, total: int, count: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": max(1, math.ceil(total / limit)),
        "hasNext": (page - 1) * limit + count < total,
        "hasPrev": page > 1,
    }


@dataclass
class RenderContext:
    """Entities a contract is rendered from"""

    template: ContractTemplate
    project_id: Optional[str] = None
    project: Optional[Project] = None
    customer: Optional[Customer] = None
    collaborator: Optional[User] = None
    scope: Optional[ProjectScope] = None

    def default_title(self) -> str:
        if self.customer is not None and self.customer.display_name:
            return f"{self.template.name} - {self.customer.display_name}"
        if self.collaborator is not None and self.collaborator.name:
            return f"{self.template.name} - {self.collaborator.name}"
        return self.template.name


# ============================================================================
# TEMPLATES
# ============================================================================


class ContractTemplateService:
    """Service layer for contract template operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def _ensure_unique_name(self, name: str, project_id: Optional[str], exclude_id: Optional[str] = None):
        # Templates without a project may share names
        if project_id and self.repo.find_by_name(self.db, name, project_id, exclude_id):
            raise validation_error("A template with this name already exists in the project", "name")

    def create_template(self, data: ContractTemplateCreate, user_id: Optional[str] = None) -> ContractTemplate:
        name = sanitize_string(data.name.strip())
        self._ensure_unique_name(name, data.projectId)

        template = self.repo.create_template(
            self.db,
            name=name,
            description=sanitize_string(data.description),
            project_id=data.projectId,
            user_id=user_id,
            template_html=data.templateHtml,
        )
        logger.info(f"📝 Created contract template {template.id} ({template.name})")
        return template

    def list_templates(
        self,
        project_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        order_by: str = "createdAt",
        order: str = "desc",
    ) -> dict:
        items, total = self.repo.list_templates(self.db, project_id, page, limit, order_by, order)
        return {"data": items, "pagination": build_pagination(page, limit, total, len(items))}

    def get_template(self, template_id: str) -> ContractTemplate:
        template = self.repo.get_template_by_id(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Contract template not found")
        return template

    def update_template(self, template_id: str, data: ContractTemplateUpdate) -> ContractTemplate:
        template = self.get_template(template_id)
        fields = data.model_fields_set

        updates = {}
        if "name" in fields and data.name is not None:
            updates["name"] = sanitize_string(data.name.strip())
        if "description" in fields:
            updates["description"] = sanitize_string(data.description)
        if "projectId" in fields:
            updates["project_id"] = data.projectId
        if "templateHtml" in fields and data.templateHtml is not None:
            updates["template_html"] = data.templateHtml

        self._ensure_unique_name(
            updates.get("name", template.name),
            updates.get("project_id", template.project_id),
            exclude_id=template.id,
        )
        return self.repo.update_template(self.db, template, **updates)

    def delete_template(self, template_id: str) -> dict:
        template = self.get_template(template_id)
        self.repo.soft_delete_template(self.db, template)
        logger.info(f"🗑️ Deleted contract template {template_id}")
        return {"message": "Contract template deleted successfully"}


# ============================================================================
# CONTRACTS
# ============================================================================


class ContractService:
    """Service layer for contract rendering and lifecycle"""

    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        tiers: Optional[Sequence[SoftwareTier]] = None,
        today: Optional[date] = None,
    ):
        self.db = db
        self.repo = ContractRepository()
        self.templates = TemplateRepository()
        self.projects = ProjectRepository()
        self.customers = CustomerRepository()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.tiers = tuple(tiers or load_software_tiers() or DEFAULT_SOFTWARE_TIERS)
        # Reference day for relative dates (DATE_EXT, day-of-month payment anchors)
        self.today = today

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _resolve_context(
        self,
        project_id: Optional[str],
        customer_id: Optional[str],
        collaborator_id: Optional[str],
        template_id: str,
        scope_id: Optional[str],
        require_finalized_scope: bool = False,
    ) -> RenderContext:
        if not project_id and not customer_id and not collaborator_id:
            raise validation_error(
                "Provide projectId and customerId, or collaboratorId for collaborator contracts",
                "projectId",
            )

        project = None
        if project_id:
            project = self.projects.get_project_by_id(self.db, project_id)
            if not project:
                raise HTTPException(status_code=404, detail="Project not found")

        customer = None
        if customer_id:
            customer = self.customers.get_customer_tree(self.db, customer_id)
            if not customer:
                raise HTTPException(status_code=404, detail="Customer not found")
            if project is not None and project.customer_id and project.customer_id != customer_id:
                raise validation_error("customerId does not match the project customer", "customerId")

        collaborator = None
        if collaborator_id:
            collaborator = self.repo.get_user_by_id(self.db, collaborator_id)
            if not collaborator:
                raise HTTPException(status_code=404, detail="User not found")

        template = self.templates.get_template_by_id(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Contract template not found")

        scope = None
        if scope_id:
            if not project_id:
                raise validation_error("scopeId requires projectId", "scopeId")
            scope = self.projects.get_scope_by_id(self.db, scope_id)
            if not scope:
                raise HTTPException(status_code=404, detail="Scope not found")
            if scope.project_id != project_id:
                raise validation_error("scopeId does not belong to the provided projectId", "scopeId")
            if require_finalized_scope and scope.status != "finalized":
                raise validation_error(
                    "Cannot create a contract from a scope that is not finalized", "scopeId"
                )

        return RenderContext(
            template=template,
            project_id=project_id,
            project=project,
            customer=customer,
            collaborator=collaborator,
            scope=scope,
        )

    def _render(
        self,
        ctx: RenderContext,
        variables: Optional[dict],
        contract_meta: dict,
        monthly_value: Any,
        months_count: Any,
        first_payment_day: Any,
    ) -> tuple[str, list[str], dict[str, str]]:
        """
        Render the template for a context.

        Returns:
            (html, unresolved keys, merged variables). Overrides win over
            auto-derived values.
        """
        auto = build_auto_placeholders(
            customer=ctx.customer,
            project=ctx.project,
            project_id=ctx.project_id,
            scope=ctx.scope,
            collaborator=ctx.collaborator,
            contract=contract_meta,
            monthly_value=monthly_value,
            months_count=months_count,
            first_payment_day=first_payment_day,
            today=self.today,
        )
        merged = {**auto, **(variables or {})}

        html = render(ctx.template.template_html, merged)
        if is_software_template(ctx.template.name) and has_payment_terms(
            monthly_value, months_count, first_payment_day
        ):
            html = process_software_contract_html(
                html,
                monthly_value,
                months_count,
                first_payment_day,
                tiers=self.tiers,
                today=self.today,
            )

        unresolved = [key for key in extract_placeholder_keys(html) if key not in merged]
        return html, unresolved, merged

    @staticmethod
    def _required_unresolved(unresolved: list[str], customer: Optional[Customer]) -> list[str]:
        """PERSON_* keys are optional when no person can be resolved"""
        return filter_optional_person_keys(unresolved, has_person_available(customer))

    @staticmethod
    def _raise_if_unresolved(required: list[str]) -> None:
        if required:
            raise validation_error(
                f"Cannot set status to 'final' with unresolved placeholders: {', '.join(required)}",
                "status",
                unresolvedPlaceholders=required,
            )

    def preview_contract(self, data: ContractPreviewRequest) -> dict:
        """Render a contract without saving it"""
        ctx = self._resolve_context(
            data.projectId, data.customerId, data.collaboratorId, data.templateId, data.scopeId
        )
        title = data.title or ctx.default_title()
        html, unresolved, merged = self._render(
            ctx,
            data.variables,
            {"title": title},
            data.monthlyValue,
            data.monthsCount,
            data.firstPaymentDay,
        )
        return {
            "contractHtml": html,
            "unresolvedPlaceholders": unresolved,
            "variables": merged,
            "title": title,
        }

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.dispatcher.discard()
            raise

    def create_contract(self, data: ContractCreate, created_by: Optional[str] = None) -> Contract:
        """Render a template into a new draft contract"""
        ctx = self._resolve_context(
            data.projectId,
            data.customerId,
            data.collaboratorId,
            data.templateId,
            data.scopeId,
            require_finalized_scope=True,
        )
        title = sanitize_string(data.title) if data.title else ctx.default_title()
        html, unresolved, _ = self._render(
            ctx,
            data.variables,
            {"title": title},
            data.monthlyValue,
            data.monthsCount,
            data.firstPaymentDay,
        )

        try:
            contract = self.repo.add_contract(
                self.db,
                project_id=data.projectId,
                customer_id=data.customerId,
                collaborator_id=data.collaboratorId,
                template_id=ctx.template.id,
                scope_id=data.scopeId,
                created_by=created_by,
                title=title,
                status="draft",
                is_locked=False,
                template_html_snapshot=ctx.template.template_html,
                scope_html_snapshot=ctx.scope.scope_html if ctx.scope is not None else None,
                contract_html=html,
                variables_json=data.variables,
                unresolved_placeholders=unresolved or None,
                monthly_value=data.monthlyValue,
                months_count=data.monthsCount,
                first_payment_day=data.firstPaymentDay,
            )
        except Exception:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(contract)

        logger.info(
            f"📝 Created contract {contract.id} from template {ctx.template.id} "
            f"({len(unresolved)} unresolved placeholder(s))"
        )

        if ctx.project is not None and ctx.customer is not None:
            self.dispatcher.schedule(EVENT_CREATED, contract.id)

        return contract

    def list_contracts(
        self,
        project_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        template_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        order_by: str = "createdAt",
        order: str = "desc",
    ) -> dict:
        filters = {
            "project_id": project_id,
            "customer_id": customer_id,
            "template_id": template_id,
            "status": status,
        }
        items, total = self.repo.list_contracts(self.db, filters, page, limit, order_by, order)
        return {"data": items, "pagination": build_pagination(page, limit, total, len(items))}

    def get_contract(self, contract_id: str) -> Contract:
        contract = self.repo.get_contract_by_id(self.db, contract_id)
        if not contract:
            raise HTTPException(status_code=404, detail="Contract not found")
        return contract

    @staticmethod
    def _check_can_edit(contract: Contract, action: str, allow_canceled: bool = False) -> None:
        if contract.is_locked:
            raise conflict_error(f"Cannot {action} contract: contract is locked", "isLocked")
        if contract.status == "signed":
            raise conflict_error(f"Cannot {action} contract: contract is already signed", "status")
        if contract.status == "canceled" and not allow_canceled:
            raise conflict_error(f"Cannot {action} contract: contract is canceled", "status")

    def update_contract(self, contract_id: str, data: ContractUpdate) -> Contract:
        """
        Update a contract.

        - A body with only {"status": "signed"} goes through mark_contract_signed
        - contractHtml is a manual override and skips re-rendering
        - anything else re-renders from the (possibly new) template and entities
        - moving to "final" requires every required placeholder to be resolved
        """
        fields = data.model_fields_set

        if fields == {"status"} and data.status == "signed":
            return self.mark_contract_signed(contract_id, reason="manual_status_patch")

        contract = self.get_contract(contract_id)
        only_locking = fields == {"isLocked"}

        if data.status == "signed" and contract.is_locked:
            raise conflict_error("Cannot mark contract as signed: contract is locked", "status")
        if "isLocked" in fields and data.isLocked is False and contract.status == "signed":
            raise conflict_error("Cannot unlock contract: contract is already signed", "isLocked")
        if not only_locking:
            self._check_can_edit(contract, "update")

        previous_status = contract.status
        previous_project_id = contract.project_id

        try:
            if only_locking:
                if data.isLocked is not None:
                    contract.is_locked = data.isLocked
            elif "contractHtml" in fields and data.contractHtml:
                self._apply_manual_html(contract, data, fields)
            else:
                self._apply_rerender(contract, data, fields)

            became_signed = previous_status != "signed" and contract.status == "signed"
            if became_signed:
                self._run_signing_cascade(contract)

            for project_id in {previous_project_id, contract.project_id}:
                if project_id and (project_id != contract.project_id or not became_signed):
                    self.projects.recompute_has_signed_contract(self.db, project_id)
        except Exception:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(contract)

        logger.info(f"✅ Updated contract {contract.id} ({previous_status} -> {contract.status})")

        if previous_status != "final" and contract.status == "final":
            self.dispatcher.schedule(EVENT_FINALIZED, contract.id)
        if previous_status != "signed" and contract.status == "signed":
            self.dispatcher.schedule(EVENT_SIGNED, contract.id)

        return contract

    def _apply_manual_html(self, contract: Contract, data: ContractUpdate, fields: set) -> None:
        contract.contract_html = data.contractHtml
        if "title" in fields:
            contract.title = sanitize_string(data.title)
        if "variables" in fields:
            contract.variables_json = data.variables
        if data.isLocked is not None:
            contract.is_locked = data.isLocked
        if "externalSignatureDocumentId" in fields:
            contract.external_signature_document_id = data.externalSignatureDocumentId

        variables = contract.variables_json or {}
        unresolved = [key for key in extract_placeholder_keys(contract.contract_html) if key not in variables]

        if data.status == "final":
            customer = (
                self.customers.get_customer_tree(self.db, contract.customer_id)
                if contract.customer_id
                else None
            )
            self._raise_if_unresolved(self._required_unresolved(unresolved, customer))
        if data.status:
            contract.status = data.status

        contract.unresolved_placeholders = unresolved or None

    def _apply_rerender(self, contract: Contract, data: ContractUpdate, fields: set) -> None:
        next_scope_id = data.scopeId if "scopeId" in fields else contract.scope_id
        ctx = self._resolve_context(
            data.projectId or contract.project_id,
            data.customerId or contract.customer_id,
            data.collaboratorId or contract.collaborator_id,
            data.templateId or contract.template_id,
            next_scope_id,
        )

        if "title" in fields:
            contract.title = sanitize_string(data.title)
        if data.isLocked is not None:
            contract.is_locked = data.isLocked
        if "externalSignatureDocumentId" in fields:
            contract.external_signature_document_id = data.externalSignatureDocumentId

        variables = data.variables if "variables" in fields else contract.variables_json
        monthly_value = data.monthlyValue if data.monthlyValue is not None else contract.monthly_value
        months_count = data.monthsCount if data.monthsCount is not None else contract.months_count
        first_payment_day = (
            data.firstPaymentDay if data.firstPaymentDay is not None else contract.first_payment_day
        )
        target_status = data.status or contract.status
        title = contract.title or ctx.default_title()

        html, unresolved, _ = self._render(
            ctx,
            variables,
            {"id": contract.id, "title": title, "status": target_status},
            monthly_value,
            months_count,
            first_payment_day,
        )

        if data.status == "final":
            self._raise_if_unresolved(self._required_unresolved(unresolved, ctx.customer))

        contract.status = target_status
        contract.project_id = ctx.project_id
        contract.customer_id = ctx.customer.id if ctx.customer is not None else None
        contract.collaborator_id = ctx.collaborator.id if ctx.collaborator is not None else None
        contract.template_id = ctx.template.id
        contract.scope_id = ctx.scope.id if ctx.scope is not None else None

        # Re-snapshot: the template or scope may have changed
        contract.template_html_snapshot = ctx.template.template_html
        contract.scope_html_snapshot = ctx.scope.scope_html if ctx.scope is not None else None

        contract.variables_json = variables
        contract.contract_html = html
        contract.unresolved_placeholders = unresolved or None
        contract.monthly_value = monthly_value
        contract.months_count = months_count
        contract.first_payment_day = first_payment_day

    def delete_contract(self, contract_id: str) -> dict:
        """Soft delete a contract and refresh its project's signed flag"""
        contract = self.get_contract(contract_id)
        self._check_can_edit(contract, "delete", allow_canceled=True)

        try:
            self.repo.soft_delete_contract(self.db, contract)
            if contract.project_id:
                self.projects.recompute_has_signed_contract(self.db, contract.project_id)
        except Exception:
            self.db.rollback()
            raise
        self._commit()

        logger.info(f"🗑️ Deleted contract {contract_id}")
        return {"message": "Contract deleted successfully"}

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def _run_signing_cascade(self, contract: Contract) -> None:
        """Lock the contract, refresh the project flag and activate customers (no commit)"""
        contract.is_locked = True
        self.db.flush()
        if contract.project_id:
            self.projects.recompute_has_signed_contract(self.db, contract.project_id)
        if contract.customer_id:
            CustomerService(self.db).activate_customer_cascade(contract.customer_id, today=self.today)

    def mark_contract_signed(
        self, contract_id: str, reason: str, signer_email: Optional[str] = None
    ) -> Contract:
        """
        Mark a contract as signed in a single transaction.

        Contract status, project flag and customer activation commit together.
        Signing an already signed contract is a no-op: no cascade and no
        notification.
        """
        contract = self.get_contract(contract_id)

        if contract.status == "signed":
            logger.debug(f"Contract {contract.id} already signed, nothing to do")
            return contract
        if contract.is_locked:
            raise conflict_error("Cannot mark contract as signed: contract is locked", "status")
        if contract.status == "canceled":
            raise conflict_error("Cannot mark contract as signed: contract is canceled", "status")

        try:
            contract.status = "signed"
            self._run_signing_cascade(contract)
        except Exception:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(contract)

        signer = f" signer={signer_email}" if signer_email else ""
        logger.info(f"✅ Contract {contract.id} marked as signed ({reason}){signer}")

        self.dispatcher.schedule(EVENT_SIGNED, contract.id)
        return contract

    def handle_signature_webhook(self, payload: Any) -> dict:
        """
        Process a verified e-signature provider event.

        Only customer signatures count: events without a signer e-mail, or
        signed by internal staff, are ignored. Returns a status describing
        what happened; ignored events are not errors.
        """
        event = payload.get("event") if isinstance(payload, dict) else None
        event_type = event.get("type") if isinstance(event, dict) else None
        event_data = event.get("data") if isinstance(event, dict) else None

        if not event_type or not isinstance(event_data, dict):
            logger.warning("⚠️ Invalid signature webhook payload structure")
            return {"status": "ignored_invalid_payload"}

        if event_type not in (SIGNATURE_EVENT_ACCEPTED, SIGNATURE_EVENT_FINISHED):
            return {"status": "ignored_event_type"}

        if event_type == SIGNATURE_EVENT_ACCEPTED:
            document_id = event_data.get("document")
        else:
            nested = event_data.get("object")
            document_id = event_data.get("id") or (nested.get("id") if isinstance(nested, dict) else None)

        if not document_id:
            logger.warning(f"⚠️ No document id in {event_type} event")
            return {"status": "ignored_missing_document"}

        user = event_data.get("user")
        signer_email = (user.get("email") if isinstance(user, dict) else None) or event_data.get("email")
        if not signer_email:
            logger.warning(f"⚠️ No signer e-mail in {event_type} event")
            return {"status": "ignored_missing_signer"}

        if INTERNAL_SIGNER_DOMAIN_MARKER and INTERNAL_SIGNER_DOMAIN_MARKER.lower() in str(signer_email).lower():
            logger.info(f"Signature by internal signer ignored: {signer_email}")
            return {"status": "ignored_internal_signer"}

        contract = self.repo.get_contract_by_external_document_id(self.db, str(document_id))
        if not contract:
            logger.warning(f"⚠️ No contract for signature document {document_id}")
            return {"status": "ignored_unknown_document"}

        if contract.status == "signed":
            logger.debug(f"Contract {contract.id} already signed, ignoring {event_type}")
            return {"status": "already_signed", "contractId": contract.id}

        if contract.is_locked or contract.status == "canceled":
            logger.warning(
                f"⚠️ Signature for contract {contract.id} ignored: "
                f"status={contract.status} locked={contract.is_locked}"
            )
            return {"status": "ignored_not_signable", "contractId": contract.id}

        self.mark_contract_signed(contract.id, reason="signature_webhook", signer_email=signer_email)
        return {"status": "signed", "contractId": contract.id}

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_contract_pdf(self, contract_id: str) -> tuple[bytes, str]:
        """Render the contract HTML to PDF. Returns (pdf bytes, file name)."""
        contract = self.get_contract(contract_id)
        if not contract.contract_html or not contract.contract_html.strip():
            raise validation_error("Contract has no HTML content to export", "contractHtml")

        printable = build_printable_html(contract.contract_html, contract.title or "Contrato")
        try:
            pdf = await html_to_pdf(printable)
        except PdfRenderError as e:
            logger.error(f"❌ PDF export failed for contract {contract.id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to generate contract PDF")

        return pdf, f"contract-{contract.id}.pdf"

    def export_contract_docx(self, contract_id: str) -> tuple[bytes, str]:
        """Convert the contract HTML to a Word document. Returns (docx bytes, file name)."""
        contract = self.get_contract(contract_id)
        if not contract.contract_html or not contract.contract_html.strip():
            raise validation_error("Contract has no HTML content to export", "contractHtml")

        try:
            content = html_to_docx(contract.contract_html)
        except DocxRenderError as e:
            logger.error(f"❌ DOCX export failed for contract {contract.id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to generate contract DOCX")

        return content, f"contract-{contract.id}.docx"
