"""Installment date calculation for monthly payment plans"""

import re
from datetime import date, datetime
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from ...utils.formatting import format_date_short

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
BR_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")
DAY_ONLY_RE = re.compile(r"^\d{1,2}$")


def _clamped_date(year: int, month: int, day: int) -> Optional[date]:
    if not (1 <= month <= 12) or day < 1 or year < 1:
        return None
    # relativedelta(day=...) stops at the last day of the month
    return date(year, month, 1) + relativedelta(day=day)


def add_months_clamped(value: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the last day of the target month.

    Jan 31 + 1 month -> Feb 28 (or Feb 29 on leap years), never Mar 3.
    """
    return value + relativedelta(months=months)


def resolve_first_payment_date(value: Any, today: Optional[date] = None) -> Optional[date]:
    """
    Resolve the first installment date.

    Args:
        value: a date/datetime, a day of month (1-31, int or numeric string),
            an ISO "YYYY-MM-DD" string or a "DD/MM/YY(YY)" string
        today: reference day used for day-of-month input (defaults to today)

    Returns:
        The anchor date, or None when the input cannot be understood
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)):
        day = int(value)
        if day < 1 or day > 31:
            return None
        today = today or date.today()
        anchor = today.replace(day=1)
        # Day already passed this month: roll to next month
        if today.day > day:
            anchor += relativedelta(months=1)
        return anchor + relativedelta(day=day)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None

        if DAY_ONLY_RE.match(s):
            return resolve_first_payment_date(int(s), today=today)

        if ISO_DATE_RE.match(s):
            year, month, day = (int(part) for part in s.split("-"))
            return _clamped_date(year, month, day)

        if BR_DATE_RE.match(s):
            day_s, month_s, year_s = s.split("/")
            year = int(year_s)
            if len(year_s) == 2:
                year += 2000
            return _clamped_date(year, int(month_s), int(day_s))

    return None


def build_installments(first: Optional[date], count: Any) -> list[str]:
    """
    One ordinal-labeled line per month, starting at first.

    Returns an empty list when count <= 0 or there is no anchor date.
    """
    try:
        count = int(count or 0)
    except (TypeError, ValueError):
        return []
    if first is None or count <= 0:
        return []
    return [
        f"{i + 1}ª parcela {format_date_short(add_months_clamped(first, i))};"
        for i in range(count)
    ]


def installments_html(first: Optional[date], count: Any) -> str:
    return "<br>\n".join(build_installments(first, count))
