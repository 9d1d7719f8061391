from datetime import date

import pytest

from backoffice.domain.contracts.software import (
    DEFAULT_SOFTWARE_TIERS,
    SoftwareTier,
    apply_price_details,
    has_payment_terms,
    is_software_template,
    pick_tier,
    process_software_contract_html,
)

from .conftest import SOFTWARE_TEMPLATE_HTML

TODAY = date(2026, 1, 10)


@pytest.mark.parametrize(
    "value, key",
    [
        (100, "startup"),
        (3397, "startup"),
        (5000, "business"),
        (9000, "advanced"),
        (20000, "premium"),
        (50000, "premium"),
    ],
)
def test_pick_tier_nearest(value, key):
    assert pick_tier(value).key == key


def test_pick_tier_tie_goes_to_first_defined():
    tiers = (SoftwareTier("a", "A", 100, 1), SoftwareTier("b", "B", 200, 2))
    assert pick_tier(150, tiers).key == "a"


def test_software_detection_and_terms():
    assert is_software_template("Contrato de SOFTWARE")
    assert not is_software_template("Contrato Padrão")
    assert not has_payment_terms(None, None, None)
    assert has_payment_terms(None, 3, None)


def test_end_to_end_pricing_table():
    html = SOFTWARE_TEMPLATE_HTML.replace("{{", "").replace("}}", "")
    out = process_software_contract_html(html, 20000, 3, 15, today=TODAY)

    assert "<td>Premium ( X )</td>" in out
    for label in ("Startup", "Business", "Advanced"):
        assert f"<td>{label} ( )</td>" in out
    assert "<td>R$ 20.000,00</td>" in out
    assert "<td>R$ 3.397,00</td>" in out
    assert (
        "<strong>Data de Vencimento:</strong><br>"
        "1ª parcela 15/01/26;<br>\n2ª parcela 15/02/26;<br>\n3ª parcela 15/03/26;</td>"
    ) in out
    assert "<strong>Investimento mensal:</strong> R$ 20.000,00 mensais." in out


def test_schedule_without_monthly_value():
    out = process_software_contract_html(SOFTWARE_TEMPLATE_HTML, None, 2, "2026-02-01", today=TODAY)
    assert "1ª parcela 01/02/26;<br>\n2ª parcela 01/03/26;" in out
    assert "<td>Premium ( )</td>" in out


def test_custom_tier_table():
    tiers = (SoftwareTier("s", "S", 1000, 10), SoftwareTier("m", "M", 2000, 20),
             SoftwareTier("l", "L", 3000, 30), SoftwareTier("xl", "XL", 4000, 40))
    out = process_software_contract_html(SOFTWARE_TEMPLATE_HTML, 1900, tiers=tiers, today=TODAY)
    assert "<td>Business ( X )</td>" in out
    assert "<td>R$ 1.900,00</td>" in out


def test_invalid_inputs_leave_html_unchanged():
    assert process_software_contract_html(SOFTWARE_TEMPLATE_HTML, "abc", 0, None) == SOFTWARE_TEMPLATE_HTML
    assert process_software_contract_html("", 20000, 3, 15) == ""


def test_missing_table_is_a_no_op():
    html = "<p>Sem tabela</p>"
    assert process_software_contract_html(html, 20000, 3, 15, today=TODAY) == html


def test_price_detail_sentences():
    html = (
        "<p><strong>Número total de horas mensais:</strong> 00 horas mensais.</p>"
        "<p>*Detalhamento do preço em caso de contratação: R$0.000,00 mensais.</p>"
    )
    premium = DEFAULT_SOFTWARE_TIERS[-1]
    out = apply_price_details(html, premium, 20000)
    assert "<strong>Número total de horas mensais:</strong> 160 horas mensais." in out
    assert "*Detalhamento do preço em caso de contratação de projeto Premium: R$ 20.000,00 mensais." in out
