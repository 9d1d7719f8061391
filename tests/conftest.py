import os
from datetime import date

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "true"
os.environ["INTERNAL_SIGNER_DOMAIN_MARKER"] = "swiftsoft"
os.environ.pop("SOFTWARE_TIERS_JSON", None)
os.environ.pop("TRACKING_API_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backoffice.database import Base, get_db  # noqa: E402
from backoffice.domain.contracts.router import get_notification_dispatcher  # noqa: E402
from backoffice.domain.contracts.service import ContractService  # noqa: E402
from backoffice.main import app  # noqa: E402
from backoffice.models import (  # noqa: E402
    Address,
    CompanyPersonLink,
    ContractTemplate,
    Customer,
    CustomerCompany,
    CustomerPerson,
    Project,
    ProjectScope,
    User,
)
from backoffice.services.notification_dispatcher import NotificationDispatcher  # noqa: E402

TODAY = date(2026, 1, 10)

SOFTWARE_TEMPLATE_HTML = """<h1>{{CONTRACT_TITLE}}</h1>
<p>Contratante: {{CUSTOMER_LEGAL_NAME}}, CNPJ {{CUSTOMER_CNPJ}}</p>
<p>Representante: {{PERSON_NAME}}</p>
<table>
<tr><td>PROJETO CONTRATADO</td><td>Startup ( )</td><td>Business ( )</td><td>Advanced ( )</td><td>Premium ( )</td></tr>
<tr><td>INVESTIMENTO</td><td>R$ 3.397,00</td><td>R$ 5.799,00</td><td>R$ 10.699,00</td><td>R$ 17.999,00</td></tr>
</table>
<table>
<tr><td>Forma de pagamento</td><td>Boleto</td><td><strong>Data de Vencimento:</strong><br>a definir</td></tr>
</table>
<p><strong>Investimento mensal:</strong> R$ 0,00 mensais.</p>"""

STANDARD_TEMPLATE_HTML = "<p>Cliente: {{CUSTOMER_NAME}}</p><p>Prazo: {{DEADLINE}}</p>"


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that records deliveries instead of enqueueing them"""

    def __init__(self):
        super().__init__()
        self.delivered: list[tuple[str, str]] = []

    async def deliver(self, event: str, contract_id: str) -> None:
        self.delivered.append((event, contract_id))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def service(db, dispatcher):
    return ContractService(db, dispatcher=dispatcher, today=TODAY)


@pytest.fixture
def client(db, dispatcher):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    """A company customer with a legal representative, a project, a finalized scope and templates"""
    manager = User(name="ana gestora", email="ana@example.com", role_name="projects.manager")
    author = User(name="bruno autor", email="bruno@example.com")
    collaborator = User(
        name="carla DOS santos",
        email="carla@example.com",
        cpf="98765432100",
        service="design de interfaces",
    )
    db.add_all([manager, author, collaborator])
    db.flush()

    company_customer = Customer(kind="COMPANY", display_name="Acme Ltda", created_by_id=author.id)
    person_customer = Customer(kind="PERSON", display_name="Maria da Silva")
    db.add_all([company_customer, person_customer])
    db.flush()

    company = CustomerCompany(
        customer_id=company_customer.id,
        legal_name="Acme Tecnologia Ltda",
        trade_name="Acme",
        cnpj="12345678000195",
    )
    person = CustomerPerson(
        customer_id=person_customer.id,
        full_name="maria DA silva",
        cpf="12345678901",
        email="maria@acme.com",
    )
    db.add_all([company, person])
    db.flush()

    db.add_all(
        [
            Address(
                company_id=company.id,
                street="Rua das Flores",
                number="100",
                district="Centro",
                city="Curitiba",
                state="PR",
                postal_code="80010000",
                is_primary=True,
            ),
            CompanyPersonLink(
                company_id=company.id,
                person_id=person.id,
                role="Sócia",
                is_legal_representative=True,
            ),
        ]
    )

    project = Project(
        project_name="Portal do Cliente",
        project_code="PC-001",
        customer_id=company_customer.id,
        created_by_id=author.id,
    )
    db.add(project)
    db.flush()

    scope = ProjectScope(
        project_id=project.id,
        user_id=author.id,
        name="Escopo v1",
        scope_html="<p>Escopo</p>",
        status="finalized",
    )
    draft_scope = ProjectScope(project_id=project.id, name="Rascunho", status="created")
    software_template = ContractTemplate(
        project_id=project.id, name="Contrato Software", template_html=SOFTWARE_TEMPLATE_HTML
    )
    standard_template = ContractTemplate(
        project_id=project.id, name="Contrato Padrão", template_html=STANDARD_TEMPLATE_HTML
    )
    db.add_all([scope, draft_scope, software_template, standard_template])
    db.commit()

    return {
        "manager": manager,
        "author": author,
        "collaborator": collaborator,
        "company_customer": company_customer,
        "person_customer": person_customer,
        "company": company,
        "person": person,
        "project": project,
        "scope": scope,
        "draft_scope": draft_scope,
        "software_template": software_template,
        "standard_template": standard_template,
    }
