"""
Word (DOCX) export of final contract HTML.

Handles the markup contract templates actually use: headings, paragraphs,
line breaks, bold/italic/underline, lists and tables.
"""

import logging
import re
from html.parser import HTMLParser
from io import BytesIO
from typing import Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Cm, Pt

logger = logging.getLogger(__name__)

DEFAULT_FONT = "Arial"
DEFAULT_SIZE_PT = 9
HEADING_SIZES_PT = {1: 14, 2: 12, 3: 11}

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.DOTALL | re.IGNORECASE)


class DocxRenderError(Exception):
    """Raised when the HTML cannot be turned into a Word document"""


class HTMLToDocxParser(HTMLParser):
    """Streams HTML into a python-docx Document"""

    def __init__(self, doc):
        super().__init__(convert_charrefs=True)
        self.doc = doc
        self.paragraph = None
        self.heading_level: Optional[int] = None
        self.bold = 0
        self.italic = 0
        self.underline = 0
        self.list_stack: list[str] = []
        self.table = None
        self.row = None
        self.row_index = -1
        self.cell_index = -1
        self.in_cell = False

    # ------------------------------------------------------------------
    # Block helpers
    # ------------------------------------------------------------------

    def _new_paragraph(self, style: Optional[str] = None):
        if self.in_cell:
            cell = self.table.cell(self.row_index, self.cell_index)
            # A fresh cell already holds one empty paragraph
            if len(cell.paragraphs) == 1 and not cell.paragraphs[0].text:
                self.paragraph = cell.paragraphs[0]
            else:
                self.paragraph = cell.add_paragraph()
        else:
            self.paragraph = self.doc.add_paragraph(style=style)
            self.paragraph.paragraph_format.space_after = Pt(6)
            self.paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        return self.paragraph

    def _start_row(self):
        if self.table is None:
            self.table = self.doc.add_table(rows=0, cols=1)
            self.table.style = "Table Grid"
        self.row = self.table.add_row()
        self.row_index += 1
        self.cell_index = -1

    def _start_cell(self):
        if self.row is None:
            self._start_row()
        self.cell_index += 1
        if self.cell_index >= len(self.table.columns):
            self.table.add_column(Cm(3))
        self.in_cell = True
        self.paragraph = None

    # ------------------------------------------------------------------
    # HTMLParser hooks
    # ------------------------------------------------------------------

    def handle_starttag(self, tag, attrs):
        if tag in ("h1", "h2", "h3", "h4", "h5", "h6"):
            self.heading_level = int(tag[1])
            self._new_paragraph()
            if not self.in_cell:
                self.paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        elif tag in ("p", "div"):
            self._new_paragraph()
        elif tag == "br":
            if self.paragraph is not None:
                self.paragraph.add_run().add_break()
        elif tag in ("strong", "b"):
            self.bold += 1
        elif tag in ("em", "i"):
            self.italic += 1
        elif tag == "u":
            self.underline += 1
        elif tag in ("ul", "ol"):
            self.list_stack.append(tag)
        elif tag == "li":
            style = "List Bullet" if self.list_stack and self.list_stack[-1] == "ul" else "List Number"
            self._new_paragraph(style=None if self.in_cell else style)
        elif tag == "table":
            self.table = None
            self.row = None
            self.row_index = -1
        elif tag == "tr":
            self._start_row()
        elif tag in ("td", "th"):
            self._start_cell()
            if tag == "th":
                self.bold += 1

    def handle_endtag(self, tag):
        if tag in ("h1", "h2", "h3", "h4", "h5", "h6"):
            self.heading_level = None
            self.paragraph = None
        elif tag in ("p", "div", "li"):
            self.paragraph = None
        elif tag in ("strong", "b"):
            self.bold = max(0, self.bold - 1)
        elif tag in ("em", "i"):
            self.italic = max(0, self.italic - 1)
        elif tag == "u":
            self.underline = max(0, self.underline - 1)
        elif tag in ("ul", "ol"):
            if self.list_stack:
                self.list_stack.pop()
        elif tag in ("td", "th"):
            if tag == "th":
                self.bold = max(0, self.bold - 1)
            self.in_cell = False
            self.paragraph = None
        elif tag == "tr":
            self.row = None
        elif tag == "table":
            self.table = None
            self.row = None
            self.in_cell = False
            self.paragraph = None

    def handle_data(self, data):
        text = re.sub(r"\s+", " ", data)
        if not text.strip():
            return
        if self.paragraph is None:
            self._new_paragraph()
            text = text.lstrip()

        run = self.paragraph.add_run(text)
        run.font.name = DEFAULT_FONT
        run.font.size = Pt(DEFAULT_SIZE_PT)
        if self.bold:
            run.bold = True
        if self.italic:
            run.italic = True
        if self.underline:
            run.underline = True
        if self.heading_level:
            run.bold = True
            run.font.size = Pt(HEADING_SIZES_PT.get(self.heading_level, 10))


def html_to_docx(contract_html: str) -> bytes:
    """Convert contract HTML into DOCX bytes"""
    try:
        doc = Document()
        for section in doc.sections:
            section.top_margin = Cm(2)
            section.bottom_margin = Cm(2)
            section.left_margin = Cm(2.5)
            section.right_margin = Cm(2.5)

        parser = HTMLToDocxParser(doc)
        parser.feed(_SCRIPT_STYLE_RE.sub("", contract_html or ""))
        parser.close()

        buffer = BytesIO()
        doc.save(buffer)
    except (ValueError, KeyError, IndexError) as e:
        logger.error(f"❌ Error generating Word document: {e}")
        raise DocxRenderError(f"Failed to generate Word document: {e}") from e

    content = buffer.getvalue()
    if not content:
        raise DocxRenderError("Word document is empty")
    return content
