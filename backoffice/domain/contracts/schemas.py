"""Contract domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

ContractStatus = Literal["draft", "final", "signed", "canceled"]
OrderBy = Literal["createdAt", "updatedAt"]
OrderDirection = Literal["asc", "desc"]


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


# ============================================================================
# TEMPLATES
# ============================================================================


class ContractTemplateCreate(BaseModel):
    """Schema for creating a contract template"""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    projectId: Optional[str] = None
    templateHtml: str = Field(..., min_length=1)


class ContractTemplateUpdate(BaseModel):
    """Schema for updating a contract template"""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    projectId: Optional[str] = None
    templateHtml: Optional[str] = Field(None, min_length=1)


class ContractTemplateResponse(BaseModel):
    id: str
    projectId: Optional[str] = None
    userId: Optional[str] = None
    name: str
    description: Optional[str] = None
    templateHtml: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ContractTemplateListResponse(BaseModel):
    data: list[ContractTemplateResponse]
    pagination: PaginationMeta


# ============================================================================
# CONTRACTS
# ============================================================================


class ContractRenderRequest(BaseModel):
    """Fields shared by preview and create"""

    projectId: Optional[str] = None
    customerId: Optional[str] = None
    # Collaborator contracts: the contracting party is an internal user
    collaboratorId: Optional[str] = None
    templateId: str
    scopeId: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)
    variables: Optional[dict[str, str]] = None
    monthlyValue: Optional[float] = Field(None, gt=0)
    monthsCount: Optional[int] = Field(None, gt=0)
    firstPaymentDay: Optional[int] = Field(None, ge=1, le=31)


class ContractPreviewRequest(ContractRenderRequest):
    """Schema for rendering a contract without saving it"""


class ContractCreate(ContractRenderRequest):
    """Schema for creating a new contract"""


class ContractUpdate(BaseModel):
    """
    Schema for updating an existing contract

    Only fields present in the request body are applied.
    """

    projectId: Optional[str] = None
    customerId: Optional[str] = None
    collaboratorId: Optional[str] = None
    templateId: Optional[str] = None
    scopeId: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)
    status: Optional[ContractStatus] = None
    isLocked: Optional[bool] = None
    externalSignatureDocumentId: Optional[str] = Field(None, max_length=255)
    variables: Optional[dict[str, str]] = None
    # Manual override (e.g. edited in a rich text editor); skips re-rendering
    contractHtml: Optional[str] = Field(None, min_length=1)
    monthlyValue: Optional[float] = Field(None, gt=0)
    monthsCount: Optional[int] = Field(None, gt=0)
    firstPaymentDay: Optional[int] = Field(None, ge=1, le=31)


class ContractPreviewResponse(BaseModel):
    contractHtml: str
    unresolvedPlaceholders: list[str]
    variables: dict[str, str]
    title: str


class ContractResponse(BaseModel):
    """Schema for contract response"""

    id: str
    projectId: Optional[str] = None
    customerId: Optional[str] = None
    collaboratorId: Optional[str] = None
    templateId: str
    scopeId: Optional[str] = None
    createdBy: Optional[str] = None
    title: Optional[str] = None
    status: ContractStatus
    isLocked: bool
    externalSignatureDocumentId: Optional[str] = None
    templateHtmlSnapshot: str
    scopeHtmlSnapshot: Optional[str] = None
    contractHtml: str
    variables: Optional[dict[str, str]] = None
    unresolvedPlaceholders: list[str] = []
    monthlyValue: Optional[float] = None
    monthsCount: Optional[int] = None
    firstPaymentDay: Optional[int] = None
    projectName: Optional[str] = None
    customerName: Optional[str] = None
    templateName: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ContractListResponse(BaseModel):
    data: list[ContractResponse]
    pagination: PaginationMeta


class SignatureWebhookResponse(BaseModel):
    received: bool = True
    status: str
    contractId: Optional[str] = None
