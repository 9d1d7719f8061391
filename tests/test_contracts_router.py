from io import BytesIO

import pytest
from docx import Document

from backoffice.domain.contracts.router import DOCX_MEDIA_TYPE
from backoffice.services import docx_renderer, document_renderer


def _contract_body(seed, **overrides):
    body = {
        "projectId": seed["project"].id,
        "customerId": seed["company_customer"].id,
        "templateId": seed["software_template"].id,
        "scopeId": seed["scope"].id,
        "monthlyValue": 20000,
        "monthsCount": 3,
        "firstPaymentDay": 15,
    }
    body.update(overrides)
    return body


# ============================================================================
# TEMPLATES
# ============================================================================


def test_template_crud(client, seed):
    response = client.post(
        "/contracts/templates",
        json={"name": "Contrato Suporte", "projectId": seed["project"].id, "templateHtml": "<p>{{CUSTOMER_NAME}}</p>"},
        headers={"X-User-Id": seed["author"].id},
    )
    assert response.status_code == 201
    template = response.json()
    assert template["userId"] == seed["author"].id

    template_id = template["id"]
    response = client.patch(f"/contracts/templates/{template_id}", json={"description": "Mensal"})
    assert response.json()["description"] == "Mensal"
    assert client.get(f"/contracts/templates/{template_id}").json()["name"] == "Contrato Suporte"

    assert client.delete(f"/contracts/templates/{template_id}").status_code == 200
    assert client.get(f"/contracts/templates/{template_id}").status_code == 404


def test_template_name_is_unique_per_project(client, seed):
    body = {"name": "Contrato Padrão", "projectId": seed["project"].id, "templateHtml": "<p></p>"}
    response = client.post("/contracts/templates", json=body)
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "name"

    # Same name without a project is allowed
    assert client.post("/contracts/templates", json={**body, "projectId": None}).status_code == 201


def test_template_list_pagination(client, seed):
    response = client.get("/contracts/templates", params={"projectId": seed["project"].id, "limit": 1, "page": 2})
    payload = response.json()
    assert len(payload["data"]) == 1
    assert payload["pagination"] == {
        "page": 2,
        "limit": 1,
        "total": 2,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }


def test_template_list_rejects_large_limit(client):
    assert client.get("/contracts/templates", params={"limit": 101}).status_code == 422


def test_unknown_acting_user(client, seed):
    response = client.post(
        "/contracts/templates",
        json={"name": "X", "templateHtml": "<p></p>"},
        headers={"X-User-Id": "nobody"},
    )
    assert response.status_code == 401


# ============================================================================
# CONTRACTS
# ============================================================================


def test_contract_flow(client, dispatcher, seed):
    preview = client.post("/contracts/preview", json=_contract_body(seed))
    assert preview.status_code == 200
    assert "<td>Premium ( X )</td>" in preview.json()["contractHtml"]

    response = client.post("/contracts", json=_contract_body(seed), headers={"X-User-Id": seed["author"].id})
    assert response.status_code == 201
    contract = response.json()
    assert contract["status"] == "draft"
    assert contract["createdBy"] == seed["author"].id
    assert contract["projectName"] == "Portal do Cliente"
    assert contract["customerName"] == "Acme Ltda"
    assert contract["templateName"] == "Contrato Software"
    assert contract["unresolvedPlaceholders"] == []
    assert contract["monthlyValue"] == 20000
    assert dispatcher.delivered == [("created", contract["id"])]

    response = client.patch(f"/contracts/{contract['id']}", json={"status": "final"})
    assert response.status_code == 200
    assert response.json()["status"] == "final"

    response = client.patch(f"/contracts/{contract['id']}", json={"status": "signed"})
    assert response.json()["status"] == "signed"
    assert response.json()["isLocked"] is True
    assert dispatcher.delivered[-2:] == [("finalized", contract["id"]), ("signed", contract["id"])]

    response = client.patch(f"/contracts/{contract['id']}", json={"isLocked": False})
    assert response.status_code == 409

    listing = client.get("/contracts", params={"projectId": seed["project"].id, "status": "signed"}).json()
    assert [c["id"] for c in listing["data"]] == [contract["id"]]


def test_finalize_with_unresolved_placeholders(client, seed):
    body = _contract_body(seed, templateId=seed["standard_template"].id)
    contract = client.post("/contracts", json=body).json()
    assert contract["unresolvedPlaceholders"] == ["DEADLINE"]

    response = client.patch(f"/contracts/{contract['id']}", json={"status": "final"})
    assert response.status_code == 400
    assert response.json()["detail"]["unresolvedPlaceholders"] == ["DEADLINE"]


@pytest.mark.parametrize(
    "field, value",
    [("monthlyValue", 0), ("monthsCount", -1), ("firstPaymentDay", 32)],
)
def test_invalid_payment_terms(client, seed, field, value):
    response = client.post("/contracts", json=_contract_body(seed, **{field: value}))
    assert response.status_code == 422


def test_unknown_contract(client):
    assert client.get("/contracts/missing").status_code == 404
    assert client.delete("/contracts/missing").status_code == 404


def test_delete_contract(client, seed):
    contract = client.post("/contracts", json=_contract_body(seed)).json()
    assert client.delete(f"/contracts/{contract['id']}").status_code == 200
    assert client.get(f"/contracts/{contract['id']}").status_code == 404


def test_pdf_export(client, seed, monkeypatch):
    rendered = {}

    async def _fake_pdf(html):
        rendered["html"] = html
        return b"%PDF-1.7 fake"

    monkeypatch.setattr("backoffice.domain.contracts.service.html_to_pdf", _fake_pdf)
    contract = client.post("/contracts", json=_contract_body(seed)).json()

    response = client.get(f"/contracts/{contract['id']}/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.7 fake"
    assert f'filename="contract-{contract["id"]}.pdf"' in response.headers["content-disposition"]
    assert "<td>Premium ( X )</td>" in rendered["html"]
    assert "<style>" in rendered["html"]


def test_pdf_export_failure(client, seed, monkeypatch):
    async def _failing_pdf(html):
        raise document_renderer.PdfRenderError("browser crashed")

    monkeypatch.setattr("backoffice.domain.contracts.service.html_to_pdf", _failing_pdf)
    contract = client.post("/contracts", json=_contract_body(seed)).json()
    assert client.get(f"/contracts/{contract['id']}/pdf").status_code == 502


def test_docx_export(client, seed):
    contract = client.post("/contracts", json=_contract_body(seed)).json()

    response = client.get(f"/contracts/{contract['id']}/docx")
    assert response.status_code == 200
    assert response.headers["content-type"] == DOCX_MEDIA_TYPE
    assert f'filename="contract-{contract["id"]}.docx"' in response.headers["content-disposition"]

    doc = Document(BytesIO(response.content))
    assert doc.paragraphs[0].text == "Contrato Software - Acme Ltda"
    cells = [cell.text for table in doc.tables for row in table.rows for cell in row.cells]
    assert "Premium ( X )" in cells
    assert "R$ 20.000,00" in cells


def test_docx_export_failure(client, seed, monkeypatch):
    def _failing_docx(html):
        raise docx_renderer.DocxRenderError("broken markup")

    monkeypatch.setattr("backoffice.domain.contracts.service.html_to_docx", _failing_docx)
    contract = client.post("/contracts", json=_contract_body(seed)).json()
    assert client.get(f"/contracts/{contract['id']}/docx").status_code == 502


def test_docx_export_unknown_contract(client):
    assert client.get("/contracts/missing/docx").status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
