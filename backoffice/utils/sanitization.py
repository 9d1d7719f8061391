"""Input sanitization helpers"""

import html
import re
from typing import Optional

_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Collapse whitespace and escape HTML special characters.

    Titles and names end up inside rendered contract HTML, so they are stored
    escaped. Input is unescaped first, so a value read back from the API and
    sent again is not escaped twice. Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    text = html.unescape(_WHITESPACE_RUN.sub(" ", value).strip())
    return html.escape(text, quote=True)
