"""
Brazilian Portuguese formatting helpers used by contract rendering.

Every function here is total: malformed input degrades to an echo of the
input (or an empty string for None) instead of raising.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

from dateutil.parser import isoparse

LINKING_PARTICLES = {"de", "do", "da", "dos", "das"}

MONTH_NAMES = [
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
]

UNITS = [
    "",
    "um",
    "dois",
    "três",
    "quatro",
    "cinco",
    "seis",
    "sete",
    "oito",
    "nove",
    "dez",
    "onze",
    "doze",
    "treze",
    "quatorze",
    "quinze",
    "dezesseis",
    "dezessete",
    "dezoito",
    "dezenove",
]

TENS = [
    "",
    "",
    "vinte",
    "trinta",
    "quarenta",
    "cinquenta",
    "sessenta",
    "setenta",
    "oitenta",
    "noventa",
]

HUNDREDS = [
    "",
    "cento",
    "duzentos",
    "trezentos",
    "quatrocentos",
    "quinhentos",
    "seiscentos",
    "setecentos",
    "oitocentos",
    "novecentos",
]


def _digits(value: Any) -> str:
    return re.sub(r"\D", "", str(value))


def format_tax_id_11(value: Optional[str]) -> str:
    """Format a CPF as XXX.XXX.XXX-XX, echoing the input if it has not 11 digits"""
    if not value:
        return ""
    d = _digits(value)
    if len(d) != 11:
        return str(value)
    return f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:11]}"


def format_tax_id_14(value: Optional[str]) -> str:
    """Format a CNPJ as XX.XXX.XXX/XXXX-XX, echoing the input if it has not 14 digits"""
    if not value:
        return ""
    d = _digits(value)
    if len(d) != 14:
        return str(value)
    return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:14]}"


def format_postal_code(value: Optional[str]) -> str:
    """Format a CEP as XXXXX-XXX, echoing the input if it has not 8 digits"""
    if not value:
        return ""
    d = _digits(value)
    if len(d) != 8:
        return str(value)
    return f"{d[:5]}-{d[5:8]}"


def format_person_name(name: Optional[str]) -> str:
    """
    Capitalize each word of a proper name.

    Linking particles (de, do, da, dos, das) stay lower case:
    "joão DA silva" -> "João da Silva"
    """
    if not name:
        return ""
    words = []
    for word in str(name).split():
        lower = word.lower()
        if lower in LINKING_PARTICLES:
            words.append(lower)
        else:
            words.append(lower[:1].upper() + lower[1:])
    return " ".join(words)


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else ""


def to_snake_upper(name: str) -> str:
    """Convert a field name (camelCase, snake_case or spaced) to UPPER_SNAKE"""
    s = str(name or "").strip()
    if not s:
        return ""
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    s = re.sub(r"[\s\-]+", "_", s)
    s = re.sub(r"[^\w]", "_", s)
    s = re.sub(r"_+", "_", s)
    return s.upper()


def coerce_number(value: Any) -> Optional[float]:
    """
    Tolerant number parsing.

    Accepts numbers and Brazilian-formatted strings such as "20000,00",
    "20.000,00" or "R$ 20.000,00". Returns None when nothing usable is found.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        s = re.sub(r"R\$", "", s, flags=re.IGNORECASE)
        s = re.sub(r"[\s\u00a0]", "", s)
        s = s.replace(".", "").replace(",", ".")
        try:
            number = float(s)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_currency(value: Any) -> str:
    """Format a value as Brazilian reais: R$ 1.234,56"""
    number = coerce_number(value)
    if number is None:
        number = 0.0
    us_style = f"{number:,.2f}"
    return "R$ " + us_style.replace(",", "_").replace(".", ",").replace("_", ".")


def number_to_words(value: int) -> str:
    """Spell out an integer in Portuguese (e.g. 1500 -> "mil quinhentos")"""
    try:
        value = int(value)
    except (TypeError, ValueError):
        return str(value)

    if value == 0:
        return "zero"
    if value < 0:
        return "menos " + number_to_words(-value)

    result = ""

    if value >= 1_000_000:
        millions = value // 1_000_000
        result += number_to_words(millions)
        result += " milhão" if millions == 1 else " milhões"
        value %= 1_000_000
        if value > 0:
            result += " "

    if value >= 1000:
        thousands = value // 1000
        result += "mil" if thousands == 1 else number_to_words(thousands) + " mil"
        value %= 1000
        if value > 0:
            result += " "

    if value >= 100:
        result += "cem" if value == 100 else HUNDREDS[value // 100]
        value %= 100
        if value > 0:
            result += " "

    if value >= 20:
        result += TENS[value // 10]
        value %= 10
        if value > 0:
            result += " e "

    if value > 0:
        result += UNITS[value]

    return result


def currency_to_words(value: Any) -> str:
    """
    Spell out a monetary value in reais.

    Example: 1500.5 -> "mil quinhentos reais e cinquenta centavos"
    """
    number = coerce_number(value)
    if number is None:
        number = 0.0

    prefix = ""
    if number < 0:
        prefix = "menos "
        number = -number

    total_cents = int(round(number * 100))
    reais, centavos = divmod(total_cents, 100)

    parts = []
    if reais > 0:
        parts.append(number_to_words(reais) + (" real" if reais == 1 else " reais"))
    if centavos > 0:
        parts.append(number_to_words(centavos) + (" centavo" if centavos == 1 else " centavos"))

    result = " e ".join(parts) if parts else "zero reais"
    return prefix + result


def coerce_date(value: Any) -> Optional[date]:
    """date, datetime or ISO 8601 string to a date; None when unparseable"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def date_to_words(value: Any = None) -> str:
    """Format a date as "19 de outubro de 2026" (defaults to today)"""
    if value is None:
        value = date.today()
    value = coerce_date(value)
    if value is None:
        return ""
    return f"{value.day} de {MONTH_NAMES[value.month - 1]} de {value.year}"


def format_date_short(value: Any) -> str:
    """DD/MM/YY; empty string for anything that is not a date"""
    value = coerce_date(value)
    if value is None:
        return ""
    return f"{value.day:02d}/{value.month:02d}/{value.year % 100:02d}"


def format_date_br(value: Any) -> str:
    """DD/MM/YYYY for dates and datetimes; empty string otherwise"""
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    return ""
