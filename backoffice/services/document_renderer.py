"""
Hand-off of final contract HTML to the headless browser renderer.

The HTML given to the renderer is a complete document with inline CSS only,
so it prints the same way without network access.
"""

import asyncio
import base64
import logging
import os
import subprocess
import sys

logger = logging.getLogger(__name__)

PDF_TIMEOUT_SECONDS = int(os.getenv("PDF_TIMEOUT_SECONDS", "120"))

PRINT_CSS = """
@page { size: A4; }
html, body { margin: 0; padding: 0; }
body {
  font-family: Arial, Helvetica, sans-serif;
  font-size: 11pt;
  line-height: 1.5;
  color: #111;
}
h1, h2, h3 { page-break-after: avoid; }
p { margin: 0 0 8px 0; text-align: justify; }
table { width: 100%; border-collapse: collapse; margin: 8px 0; page-break-inside: avoid; }
th, td { border: 1px solid #444; padding: 6px; vertical-align: top; }
img { max-width: 100%; }
""".strip()


class PdfRenderError(Exception):
    """Raised when the PDF worker fails or times out"""


def build_printable_html(contract_html: str, title: str = "Contrato") -> str:
    """Wrap contract HTML into a standalone, printable document"""
    body = str(contract_html or "")
    if "<html" in body.lower():
        return body
    return (
        "<!DOCTYPE html>\n"
        '<html lang="pt-BR">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{title}</title>\n"
        f"<style>\n{PRINT_CSS}\n</style>\n"
        "</head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )


async def html_to_pdf(html: str) -> bytes:
    """
    Convert HTML to PDF using Playwright via subprocess.
    Runs in a separate process to avoid asyncio conflicts with the server loop.
    """
    worker_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "pdf_worker.py"))
    html_b64 = base64.b64encode(html.encode("utf-8")).decode("utf-8")

    def run_worker() -> bytes:
        try:
            result = subprocess.run(
                [sys.executable, worker_path],
                input=html_b64,
                capture_output=True,
                text=True,
                timeout=PDF_TIMEOUT_SECONDS,
            )
        except subprocess.TimeoutExpired as e:
            raise PdfRenderError(f"PDF generation timed out after {PDF_TIMEOUT_SECONDS} seconds") from e

        if result.returncode != 0:
            raise PdfRenderError(f"PDF worker failed (exit {result.returncode}): {result.stderr}")

        pdf_b64 = result.stdout.strip()
        if not pdf_b64:
            raise PdfRenderError("PDF worker returned empty output")
        return base64.b64decode(pdf_b64)

    # Run in thread pool to not block the event loop
    return await asyncio.to_thread(run_worker)
