import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class User(Base):
    """Internal user. Also the contracting party of collaborator contracts."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    cpf = Column(String(11), nullable=True)
    cnpj = Column(String(14), nullable=True)
    birth_date = Column(Date, nullable=True)
    postal_code = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    address_state = Column(String(100), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_neighborhood = Column(String(100), nullable=True)
    service = Column(String(255), nullable=True)  # Service a collaborator provides
    role_name = Column(String(100), nullable=True)  # e.g. projects.manager
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    kind = Column(String(20), nullable=False)  # PERSON, COMPANY
    display_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    person = relationship("CustomerPerson", back_populates="customer", uselist=False)
    company = relationship("CustomerCompany", back_populates="customer", uselist=False)


class CustomerPerson(Base):
    __tablename__ = "customer_persons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    cpf = Column(String(11), nullable=False, unique=True)
    rg = Column(String(30), nullable=True)
    birth_date = Column(Date, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    customer = relationship("Customer", back_populates="person")
    addresses = relationship("Address", back_populates="person")
    company_links = relationship("CompanyPersonLink", back_populates="person")


class CustomerCompany(Base):
    __tablename__ = "customer_companies"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, unique=True)
    legal_name = Column(String(255), nullable=False)
    trade_name = Column(String(255), nullable=True)
    cnpj = Column(String(14), nullable=False, unique=True)
    state_registration = Column(String(50), nullable=True)
    municipal_registration = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    customer = relationship("Customer", back_populates="company")
    addresses = relationship("Address", back_populates="company")
    links = relationship("CompanyPersonLink", back_populates="company")


class CompanyPersonLink(Base):
    __tablename__ = "company_person_links"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    company_id = Column(String(36), ForeignKey("customer_companies.id"), nullable=False)
    person_id = Column(String(36), ForeignKey("customer_persons.id"), nullable=False)
    role = Column(String(100), nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    is_legal_representative = Column(Boolean, default=False, nullable=False)
    started_on = Column(Date, nullable=True)
    ended_on = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)

    company = relationship("CustomerCompany", back_populates="links")
    person = relationship("CustomerPerson", back_populates="company_links")


class Address(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    address_type = Column(String(1), default="C")  # A, P, C, E
    label = Column(String(100), nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    street = Column(String(255), nullable=False)
    number = Column(String(20), nullable=True)
    complement = Column(String(255), nullable=True)
    district = Column(String(255), nullable=True)
    city = Column(String(255), nullable=False)
    state = Column(String(2), nullable=False)
    postal_code = Column(String(8), nullable=False)
    country = Column(String(2), default="BR")
    person_id = Column(String(36), ForeignKey("customer_persons.id"), nullable=True)
    company_id = Column(String(36), ForeignKey("customer_companies.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)

    person = relationship("CustomerPerson", back_populates="addresses")
    company = relationship("CustomerCompany", back_populates="addresses")


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_name = Column(String(255), nullable=False)
    project_code = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    # SOFTWARE, MAINTENANCE, EVOLUTION, RESEARCH_DEVELOPMENT, CONSULTING, AGENTS_AI, OTHER
    project_type = Column(String(50), default="SOFTWARE", nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    # Derived: true while at least one non-deleted signed contract exists
    has_signed_contract = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    customer = relationship("Customer")


class ProjectScope(Base):
    __tablename__ = "project_scopes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    name = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    scope_html = Column(Text, nullable=False, default="")
    status = Column(String(20), default="created", nullable=False)  # created, in_review, finalized
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    project = relationship("Project")


class ContractTemplate(Base):
    __tablename__ = "contract_templates"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # Owning project; name is unique per project among non-deleted templates
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    template_html = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    project = relationship("Project")


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    # Collaborator contracts: the contracting party is an internal user
    collaborator_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    template_id = Column(String(36), ForeignKey("contract_templates.id"), nullable=False)
    scope_id = Column(String(36), ForeignKey("project_scopes.id"), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    title = Column(String(255), nullable=True)
    # Status workflow: draft → final → signed, canceled from draft or final
    status = Column(String(20), default="draft", nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    external_signature_document_id = Column(String(255), nullable=True, index=True)

    # Snapshots for audit (template/scope may change later)
    template_html_snapshot = Column(Text, nullable=False)
    scope_html_snapshot = Column(Text, nullable=True)
    # Rendered (or manually edited) HTML
    contract_html = Column(Text, nullable=False)
    variables_json = Column(JSON, nullable=True)
    unresolved_placeholders = Column(JSON, nullable=True)

    monthly_value = Column(Float, nullable=True)
    months_count = Column(Integer, nullable=True)
    first_payment_day = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    project = relationship("Project")
    customer = relationship("Customer")
    collaborator = relationship("User", foreign_keys=[collaborator_id])
    template = relationship("ContractTemplate")
    scope = relationship("ProjectScope")
    created_by_user = relationship("User", foreign_keys=[created_by])


class Notification(Base):
    """In-app notification row"""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    entity = Column(String(50), nullable=True)  # e.g. contract
    entity_id = Column(String(36), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
