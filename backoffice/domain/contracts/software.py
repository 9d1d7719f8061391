"""
Tier-priced ("software") contract templates.

These templates carry a pricing table with one column per tier. When the
contract has payment terms, the table is filled in after placeholder
rendering: the nearest tier column is checked, its investment cell gets the
monthly value, the price detail sentences are completed and the due-date
cell receives the installment list.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from ...utils.formatting import coerce_number, format_currency
from . import html_tables
from .payment_schedule import installments_html, resolve_first_payment_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoftwareTier:
    key: str
    label: str
    value: float
    hours: int


# Column order in the pricing table follows this order (label column is 0)
DEFAULT_SOFTWARE_TIERS: tuple[SoftwareTier, ...] = (
    SoftwareTier(key="startup", label="Startup", value=3397.0, hours=20),
    SoftwareTier(key="business", label="Business", value=5799.0, hours=40),
    SoftwareTier(key="advanced", label="Advanced", value=10699.0, hours=80),
    SoftwareTier(key="premium", label="Premium", value=17999.0, hours=160),
)

CONTRACTED_ROW_LABEL = "PROJETO CONTRATADO"
INVESTMENT_ROW_LABEL = "INVESTIMENTO"
TIER_ROW_MIN_CELLS = 5
DUE_DATE_ROW_MIN_CELLS = 3

# "R$0.000,00", "R$ 0.000,00", "R$0,00", ...
_ZERO_AMOUNT = r"R\$\s*0+[.,]0*,?0*0*\s*mensais\.?"

HOURS_BOLD_RE = re.compile(
    r"(<strong[^>]*>Número total de horas mensais:\s*</strong>)\s*0+\s*horas mensais\.?",
    re.IGNORECASE,
)
HOURS_PLAIN_RE = re.compile(r"Número total de horas mensais:\s*0+\s*horas mensais\.?", re.IGNORECASE)
INVESTMENT_BOLD_RE = re.compile(
    r"(<strong[^>]*>Investimento mensal:\s*</strong>)\s*" + _ZERO_AMOUNT, re.IGNORECASE
)
INVESTMENT_PLAIN_RE = re.compile(r"Investimento mensal:\s*" + _ZERO_AMOUNT, re.IGNORECASE)
PRICE_DETAIL_RE = re.compile(r"\*\s*Detalhamento do preço[^:]*:\s*" + _ZERO_AMOUNT, re.IGNORECASE)


def is_software_template(template_name: Optional[str]) -> bool:
    return "software" in str(template_name or "").lower()


def has_payment_terms(monthly_value: Any, months_count: Any, first_payment_day: Any) -> bool:
    return any(value is not None for value in (monthly_value, months_count, first_payment_day))


def pick_tier(monthly_value: float, tiers: Sequence[SoftwareTier] = DEFAULT_SOFTWARE_TIERS) -> SoftwareTier:
    """
    Nearest tier by absolute difference.

    Ties go to the tier defined first (the scan keeps the first minimum).
    """
    selected = tiers[0]
    min_diff = abs(monthly_value - selected.value)
    for tier in tiers:
        diff = abs(monthly_value - tier.value)
        if diff < min_diff:
            min_diff = diff
            selected = tier
    return selected


def tier_column(tier: SoftwareTier, tiers: Sequence[SoftwareTier]) -> int:
    return list(tiers).index(tier) + 1


def apply_investment_table(
    html: str,
    tier: SoftwareTier,
    monthly_value: float,
    tiers: Sequence[SoftwareTier] = DEFAULT_SOFTWARE_TIERS,
) -> str:
    """Check the tier column in PROJETO CONTRATADO and write the value in INVESTIMENTO"""
    column = tier_column(tier, tiers)
    last_column = len(tiers)
    formatted = format_currency(monthly_value)

    def _contracted_row(row: str) -> str:
        def _cell(cell: str, index: int, _total: int) -> str:
            if 1 <= index <= last_column:
                return html_tables.set_cell_checkbox(cell, index == column)
            return cell

        return html_tables.map_row_cells(row, _cell)

    def _investment_row(row: str) -> str:
        def _cell(cell: str, index: int, _total: int) -> str:
            if index == column:
                return html_tables.set_investment_cell_value(cell, formatted)
            return cell

        return html_tables.map_row_cells(row, _cell)

    html = html_tables.update_first_row_containing_label(
        html,
        CONTRACTED_ROW_LABEL,
        _contracted_row,
        only_first_cell=True,
        min_cells=TIER_ROW_MIN_CELLS,
    )
    return html_tables.update_first_row_containing_label(
        html,
        INVESTMENT_ROW_LABEL,
        _investment_row,
        only_first_cell=True,
        min_cells=TIER_ROW_MIN_CELLS,
    )


def apply_price_details(html: str, tier: SoftwareTier, monthly_value: float) -> str:
    """Fill the zeroed monthly hours / monthly investment sentences"""
    formatted = format_currency(monthly_value)

    html = HOURS_BOLD_RE.sub(lambda m: f"{m.group(1)} {tier.hours} horas mensais.", html)
    html = HOURS_PLAIN_RE.sub(
        lambda _m: f"Número total de horas mensais: {tier.hours} horas mensais.", html
    )
    html = INVESTMENT_BOLD_RE.sub(lambda m: f"{m.group(1)} {formatted} mensais.", html)
    html = INVESTMENT_PLAIN_RE.sub(lambda _m: f"Investimento mensal: {formatted} mensais.", html)
    return PRICE_DETAIL_RE.sub(
        lambda _m: (
            f"*Detalhamento do preço em caso de contratação de projeto {tier.label}: "
            f"{formatted} mensais."
        ),
        html,
    )


def apply_payment_schedule(
    html: str,
    first_payment_day: Any,
    months_count: Any,
    today: Optional[date] = None,
) -> str:
    """Write the installment list into the "Data de Vencimento" cell"""
    count = coerce_number(months_count)
    if count is None or int(count) <= 0:
        return html

    first = resolve_first_payment_date(first_payment_day, today=today)
    if first is None:
        return html

    lines = installments_html(first, int(count))
    return html_tables.update_first_row_containing_label(
        html,
        html_tables.DUE_DATE_LABEL,
        lambda row: html_tables.update_due_dates_row(row, lines),
        min_cells=DUE_DATE_ROW_MIN_CELLS,
    )


def process_software_contract_html(
    html: str,
    monthly_value: Any,
    months_count: Any = None,
    first_payment_day: Any = None,
    tiers: Optional[Sequence[SoftwareTier]] = None,
    today: Optional[date] = None,
) -> str:
    """
    Run the pricing table pipeline over rendered contract HTML.

    Investment and schedule updates are independent: a contract with only a
    months count and first payment day still gets its due dates.
    """
    out = str(html or "")
    if not out.strip():
        return out

    tiers = tuple(tiers or DEFAULT_SOFTWARE_TIERS)
    value = coerce_number(monthly_value)
    if value is not None and value > 0:
        tier = pick_tier(value, tiers)
        logger.info(f"💰 Monthly value {value:.2f} matched tier '{tier.key}'")
        out = apply_investment_table(out, tier, value, tiers)
        out = apply_price_details(out, tier, value)

    return apply_payment_schedule(out, first_payment_day, months_count, today=today)
