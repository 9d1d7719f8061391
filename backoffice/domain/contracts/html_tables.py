"""
Tolerant, regex-driven rewriting of table rows and cells in rendered HTML.

Contract HTML comes from a rich-text editor and is not reliably well-formed,
so rows and cells are located with forgiving patterns instead of a parser.
Only the targeted row/cell changes; every other byte is kept verbatim.
"""

import logging
import re
from collections.abc import Callable
from typing import Optional

logger = logging.getLogger(__name__)

ROW_RE = re.compile(r"<tr\b[^>]*>[\s\S]*?</tr>", re.IGNORECASE)
CELL_RE = re.compile(r"<(td|th)\b[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
WHOLE_CELL_RE = re.compile(r"^<(td|th)\b([^>]*)>([\s\S]*?)</\1>$", re.IGNORECASE)

# Whitespace, &nbsp;, U+00A0 or inline tags may sit between the words of a label
LOOSE_JOINER = r"(?:\s|&nbsp;|\u00a0|<[^>]+>)*"

CHECKED_MARK_RE = re.compile(r"\(\s*X\s*\)", re.IGNORECASE)
ANY_MARK_RE = re.compile(r"\(\s*[^)]*\)")
CURRENCY_AMOUNT_RE = re.compile(r"R\$(?:\s|&nbsp;|\u00a0)*[\d.]+,\d{2}", re.IGNORECASE)
BARE_AMOUNT_RE = re.compile(r"[\d.]+,\d{2}")
FIRST_PARAGRAPH_RE = re.compile(r"<p\b([^>]*)>[\s\S]*?</p>", re.IGNORECASE)
MONTHLY_SUFFIX_RE = re.compile(r"mensais", re.IGNORECASE)
DUE_DATE_LABEL_PREFIX_RE = re.compile(
    r"(<strong\b[^>]*>\s*Data" + LOOSE_JOINER + r"de" + LOOSE_JOINER
    + r"Vencimento\s*:\s*</strong>\s*(?:<br\b[^>]*>\s*)?)",
    re.IGNORECASE,
)

DUE_DATE_LABEL = "Data de Vencimento"

RowUpdater = Callable[[str], str]
CellMapper = Callable[[str, int, int], str]


def make_loose_label_regex(label: str) -> re.Pattern:
    """Match the words of label in order, tolerating markup between them"""
    parts = [re.escape(part) for part in str(label or "").split()]
    return re.compile(LOOSE_JOINER.join(parts), re.IGNORECASE)


def cell_contains_label(cell_html: str, label: str) -> bool:
    return bool(make_loose_label_regex(label).search(str(cell_html or "")))


def _split_cell(cell_html: str) -> Optional[tuple[str, str, str]]:
    match = WHOLE_CELL_RE.match(str(cell_html or ""))
    if not match:
        return None
    return match.group(1), match.group(2) or "", match.group(3) or ""


def update_first_row_containing_label(
    html: str,
    label: str,
    updater: RowUpdater,
    only_first_cell: bool = False,
    min_cells: Optional[int] = None,
) -> str:
    """
    Apply updater to the first <tr> whose text contains label.

    Args:
        html: document to scan
        label: human readable label, e.g. "PROJETO CONTRATADO"
        updater: row transform; if it raises, the original row is kept
        only_first_cell: match the label against the first cell only
        min_cells: skip rows with fewer cells (caption rows)
    """
    label_re = make_loose_label_regex(label)
    updated = False

    def _visit(match: re.Match) -> str:
        nonlocal updated
        row = match.group(0)
        if updated:
            return row

        if min_cells and len(list(CELL_RE.finditer(row))) < min_cells:
            return row

        if only_first_cell:
            first_cell = CELL_RE.search(row)
            if not first_cell or not label_re.search(first_cell.group(0)):
                return row
        elif not label_re.search(row):
            return row

        updated = True
        try:
            return updater(row)
        except Exception as e:
            logger.warning(f"⚠️ Could not update table row '{label}', keeping original: {e}")
            return row

    return ROW_RE.sub(_visit, str(html or ""))


def map_row_cells(row_html: str, mapper: CellMapper) -> str:
    """Rewrite each <td>/<th> through mapper(cell, index, total), keeping inter-cell bytes"""
    row = str(row_html or "")
    matches = list(CELL_RE.finditer(row))
    if not matches:
        return row

    total = len(matches)
    out = []
    last = 0
    for index, match in enumerate(matches):
        out.append(row[last:match.start()])
        out.append(mapper(match.group(0), index, total))
        last = match.end()
    out.append(row[last:])
    return "".join(out)


def set_cell_checkbox(cell_html: str, checked: bool) -> str:
    """
    Toggle a "( X )" / "( )" marker inside a cell.

    Any existing mark is cleared first. A checked cell without a marker gets
    one appended.
    """
    parts = _split_cell(cell_html)
    if parts is None:
        return str(cell_html or "")
    tag, attrs, inner = parts

    inner = CHECKED_MARK_RE.sub("( )", inner)
    if ANY_MARK_RE.search(inner):
        inner = ANY_MARK_RE.sub("( X )" if checked else "( )", inner, count=1)
    elif checked:
        inner = f"{inner} ( X )"

    return f"<{tag}{attrs}>{inner}</{tag}>"


def replace_currency_in_cell(cell_html: str, formatted: str) -> str:
    """Swap "R$ 17.999,00"-like amounts (or a bare "17.999,00") for formatted"""
    parts = _split_cell(cell_html)
    if parts is None:
        return str(cell_html or "")
    tag, attrs, inner = parts

    if CURRENCY_AMOUNT_RE.search(inner):
        inner = CURRENCY_AMOUNT_RE.sub(lambda _m: formatted, inner)
    else:
        number_only = re.sub(r"^R\$\s*", "", formatted, flags=re.IGNORECASE)
        inner = BARE_AMOUNT_RE.sub(lambda _m: number_only, inner)

    return f"<{tag}{attrs}>{inner}</{tag}>"


def set_investment_cell_value(cell_html: str, formatted: str) -> str:
    """
    Put a monetary value into a cell, whatever its inner layout.

    Tried in order, each only when the previous one found nothing:
    1. replace an amount already present in the cell
    2. replace the contents of the first <p> (its attributes are kept)
    3. replace everything before the first <br>, keeping the rest
    4. replace the whole body, re-appending a "mensais" suffix if there was one
    """
    parts = _split_cell(cell_html)
    if parts is None:
        return str(cell_html or "")
    tag, attrs, inner = parts
    original = f"<{tag}{attrs}>{inner}</{tag}>"

    replaced = replace_currency_in_cell(original, formatted)
    if replaced != original:
        return replaced

    suffix_match = MONTHLY_SUFFIX_RE.search(inner)
    suffix = suffix_match.group(0) if suffix_match else ""

    if FIRST_PARAGRAPH_RE.search(inner):
        inner = FIRST_PARAGRAPH_RE.sub(lambda m: f"<p{m.group(1)}>{formatted}</p>", inner, count=1)
        return f"<{tag}{attrs}>{inner}</{tag}>"

    br_index = inner.lower().find("<br")
    if br_index >= 0:
        return f"<{tag}{attrs}>{formatted}{inner[br_index:]}</{tag}>"

    inner = f"{formatted} {suffix}" if suffix else formatted
    return f"<{tag}{attrs}>{inner}</{tag}>"


def set_due_dates_cell_value(cell_html: str, installments_html: str) -> str:
    """Keep a bold "Data de Vencimento:" label (and its <br>) and append the installments"""
    parts = _split_cell(cell_html)
    if parts is None:
        return str(cell_html or "")
    tag, attrs, inner = parts

    prefix = DUE_DATE_LABEL_PREFIX_RE.search(inner)
    if prefix:
        return f"<{tag}{attrs}>{prefix.group(1)}{installments_html}</{tag}>"

    return f"<{tag}{attrs}><strong>{DUE_DATE_LABEL}:</strong><br>{installments_html}</{tag}>"


def update_due_dates_row(row_html: str, installments_html: str) -> str:
    def _cell(cell: str, _index: int, _total: int) -> str:
        if cell_contains_label(cell, DUE_DATE_LABEL):
            return set_due_dates_cell_value(cell, installments_html)
        return cell

    return map_row_cells(row_html, _cell)
