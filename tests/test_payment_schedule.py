from datetime import date, datetime

import pytest

from backoffice.domain.contracts.payment_schedule import (
    add_months_clamped,
    build_installments,
    installments_html,
    resolve_first_payment_date,
)

TODAY = date(2026, 1, 10)


def test_add_months_clamps_to_month_end():
    assert add_months_clamped(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months_clamped(date(2028, 1, 31), 1) == date(2028, 2, 29)
    assert add_months_clamped(date(2026, 11, 30), 3) == date(2027, 2, 28)


def test_day_of_month_not_yet_passed_stays_in_current_month():
    assert resolve_first_payment_date(15, today=TODAY) == date(2026, 1, 15)
    assert resolve_first_payment_date(10, today=TODAY) == date(2026, 1, 10)


def test_day_of_month_already_passed_rolls_to_next_month():
    assert resolve_first_payment_date(5, today=TODAY) == date(2026, 2, 5)
    assert resolve_first_payment_date(5, today=date(2026, 12, 20)) == date(2027, 1, 5)


def test_day_of_month_is_clamped():
    assert resolve_first_payment_date(31, today=date(2026, 2, 1)) == date(2026, 2, 28)


def test_rollover_from_month_end_is_clamped():
    assert resolve_first_payment_date(30, today=date(2026, 1, 31)) == date(2026, 2, 28)
    assert resolve_first_payment_date(29, today=date(2028, 1, 31)) == date(2028, 2, 29)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("15", date(2026, 1, 15)),
        ("2026-03-31", date(2026, 3, 31)),
        ("2026-02-31", date(2026, 2, 28)),
        ("05/04/26", date(2026, 4, 5)),
        ("05/04/2027", date(2027, 4, 5)),
        (datetime(2026, 6, 1, 12, 30), date(2026, 6, 1)),
        (date(2026, 6, 1), date(2026, 6, 1)),
    ],
)
def test_resolve_first_payment_date_formats(value, expected):
    assert resolve_first_payment_date(value, today=TODAY) == expected


@pytest.mark.parametrize("value", [None, "", "soon", 0, 32, True, "2026-13-01"])
def test_resolve_first_payment_date_invalid(value):
    assert resolve_first_payment_date(value, today=TODAY) is None


def test_build_installments():
    assert build_installments(date(2026, 1, 31), 3) == [
        "1ª parcela 31/01/26;",
        "2ª parcela 28/02/26;",
        "3ª parcela 31/03/26;",
    ]


def test_build_installments_empty_cases():
    assert build_installments(date(2026, 1, 1), 0) == []
    assert build_installments(None, 3) == []


def test_installments_html_joins_with_line_breaks():
    assert installments_html(date(2026, 1, 15), 2) == "1ª parcela 15/01/26;<br>\n2ª parcela 15/02/26;"
