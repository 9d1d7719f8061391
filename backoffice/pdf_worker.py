"""
Standalone contract PDF worker.

Runs as a separate process so Playwright's sync API never shares an event
loop with the API server. Reads base64 HTML on stdin, writes base64 PDF on
stdout.
"""

import base64
import sys

from playwright.sync_api import sync_playwright

PAGE_MARGIN = "20mm"


def render_contract_pdf(html: str) -> bytes:
    """Print a self-contained HTML contract to an A4 PDF"""
    with sync_playwright() as p:
        browser = p.chromium.launch(args=["--no-sandbox"])
        try:
            page = browser.new_page()
            page.set_content(html, wait_until="load")
            return page.pdf(
                format="A4",
                margin={
                    "top": PAGE_MARGIN,
                    "bottom": PAGE_MARGIN,
                    "left": PAGE_MARGIN,
                    "right": PAGE_MARGIN,
                },
                print_background=True,
            )
        finally:
            browser.close()


if __name__ == "__main__":
    html = base64.b64decode(sys.stdin.read()).decode("utf-8")
    sys.stdout.write(base64.b64encode(render_contract_pdf(html)).decode("utf-8"))
