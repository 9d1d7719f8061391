"""
{{KEY}} placeholder extraction and rendering.

Unknown keys are left in the output as literal tokens so that authors can see
exactly which fields are still missing.
"""

import re
from collections.abc import Iterable, Mapping

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Z0-9_]{1,120})\s*\}\}")

# Keys under this prefix come from the customer's representative person
PERSON_PREFIX = "PERSON_"


def extract_placeholder_keys(html: str) -> list[str]:
    """Return the unique placeholder keys in first-seen order"""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_RE.finditer(str(html or "")):
        seen.setdefault(match.group(1), None)
    return list(seen)


def render(html: str, variables: Mapping[str, str]) -> str:
    """Substitute every token whose key is present in variables (empty values included)"""

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key in variables:
            value = variables[key]
            return "" if value is None else str(value)
        return match.group(0)

    return PLACEHOLDER_RE.sub(_replace, str(html or ""))


def unresolved(html: str, variables: Mapping[str, str]) -> list[str]:
    """Keys that survive rendering"""
    return extract_placeholder_keys(render(html, variables))


def filter_optional_person_keys(keys: Iterable[str], has_person: bool) -> list[str]:
    """Drop PERSON_* keys when there is no person to take them from"""
    if has_person:
        return list(keys)
    return [key for key in keys if not key.startswith(PERSON_PREFIX)]
