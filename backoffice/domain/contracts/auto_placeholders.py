"""
Flattens the entities around a contract into the {{KEY}} variable map.

Each entity has a curated registry of (key suffix, accessor) pairs that
produce formatted values. A generic pass over the entity's primitive column
values then fills any key the registry did not produce, so new columns
become available to templates without code changes. Curated keys always win.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import date
from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from ...utils.formatting import (
    capitalize_first,
    currency_to_words,
    date_to_words,
    format_currency,
    format_date_br,
    format_person_name,
    format_postal_code,
    format_tax_id_11,
    format_tax_id_14,
    number_to_words,
    to_snake_upper,
)

Accessor = Callable[[Any], str]

CUSTOMER_PREFIX = "CUSTOMER_"
PERSON_PREFIX = "PERSON_"
PROJECT_PREFIX = "PROJECT_"
COLLABORATOR_PREFIX = "COLLABORATOR_"


def _get(entity: Any, name: str) -> Any:
    if entity is None:
        return None
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _field(name: str, formatter: Optional[Callable[[Any], str]] = None) -> Accessor:
    def accessor(entity: Any) -> str:
        value = _get(entity, name)
        if formatter is None:
            return _text(value)
        return formatter(value) if value else ""

    return accessor


def _upper(name: str) -> Accessor:
    def accessor(entity: Any) -> str:
        value = _get(entity, name)
        return str(value).strip().upper() if value else ""

    return accessor


CUSTOMER_FIELDS: tuple[tuple[str, Accessor], ...] = (
    ("NAME", _field("display_name")),
    ("ID", _field("id")),
    ("KIND", _field("kind")),
    ("IS_ACTIVE", _field("is_active")),
)

COMPANY_FIELDS: tuple[tuple[str, Accessor], ...] = (
    ("CNPJ", _field("cnpj", format_tax_id_14)),
    ("LEGAL_NAME", _field("legal_name")),
    ("TRADE_NAME", _field("trade_name")),
)

PERSON_FIELDS: tuple[tuple[str, Accessor], ...] = (
    ("NAME", _field("full_name", format_person_name)),
    ("FULL_NAME", _field("full_name", format_person_name)),
    ("CPF", _field("cpf", format_tax_id_11)),
    ("RG", _field("rg")),
    ("EMAIL", _field("email")),
    ("PHONE", _field("phone")),
    ("ID", _field("id")),
    ("BIRTH_DATE", _field("birth_date", format_date_br)),
)

PROJECT_FIELDS: tuple[tuple[str, Accessor], ...] = (
    ("NAME", _field("project_name")),
    ("CODE", _field("project_code")),
    ("ID", _field("id")),
    ("TYPE", _field("project_type")),
    ("DESCRIPTION", _field("description")),
)

COLLABORATOR_FIELDS: tuple[tuple[str, Accessor], ...] = (
    ("NAME", _field("name", format_person_name)),
    ("FULL_NAME", _field("name", format_person_name)),
    ("NAME_UPPERCASE", _upper("name")),
    ("EMAIL", _field("email")),
    ("PHONE", _field("phone")),
    ("ID", _field("id")),
    ("CPF", _field("cpf", format_tax_id_11)),
    ("CNPJ", _field("cnpj", format_tax_id_14)),
    ("BIRTH_DATE", _field("birth_date", format_date_br)),
    ("ADDRESS", _field("address")),
    ("ADDRESS_STATE", _field("address_state")),
    ("ADDRESS_CITY", _field("address_city")),
    ("ADDRESS_NEIGHBORHOOD", _field("address_neighborhood")),
    ("POSTAL_CODE", _field("postal_code", format_postal_code)),
    ("SERVICE", _field("service")),
    ("SERVICE_UPPERCASE", _upper("service")),
)


def primitive_fields(entity: Any) -> Iterator[tuple[str, Any]]:
    """
    Yield (name, value) for every primitive attribute of entity.

    Mapped SQLAlchemy objects expose their column attributes; plain mappings
    and simple objects expose their own items. Relationships, dates and
    nested structures are skipped.
    """
    if entity is None:
        return
    if isinstance(entity, Mapping):
        items: Iterable[tuple[str, Any]] = entity.items()
    else:
        try:
            state = sa_inspect(entity)
        except NoInspectionAvailable:
            items = ((k, v) for k, v in vars(entity).items() if not k.startswith("_"))
        else:
            items = ((attr.key, getattr(entity, attr.key)) for attr in state.mapper.column_attrs)

    for name, value in items:
        if value is None or isinstance(value, (str, int, float, bool)):
            yield name, value


def _apply_registry(out: dict, prefix: str, registry, entity: Any) -> None:
    for suffix, accessor in registry:
        out[f"{prefix}{suffix}"] = accessor(entity)


def _apply_dynamic(out: dict, prefix: str, entity: Any) -> None:
    for name, value in primitive_fields(entity):
        key = f"{prefix}{to_snake_upper(name)}"
        if key not in out:
            out[key] = _text(value)


def _live(items: Optional[Iterable[Any]]) -> list:
    return [item for item in (items or []) if _get(item, "deleted_at") is None]


def primary_address(addresses: Optional[Iterable[Any]]) -> Optional[Any]:
    """The address flagged primary, else the first one"""
    candidates = _live(addresses)
    for address in candidates:
        if _get(address, "is_primary") is True:
            return address
    return candidates[0] if candidates else None


def compose_address(address: Any) -> str:
    parts = [
        str(_get(address, attr))
        for attr in ("street", "number", "complement", "district", "city", "state")
        if _get(address, attr)
    ]
    postal_code = _get(address, "postal_code")
    if postal_code:
        parts.append(f"CEP: {postal_code}")
    return ", ".join(parts)


def _apply_address(out: dict, prefix: str, addresses: Optional[Iterable[Any]]) -> None:
    address = primary_address(addresses)
    if address is None:
        return
    out[f"{prefix}ADDRESS"] = compose_address(address)
    out[f"{prefix}ADDRESS_CITY"] = _text(_get(address, "city"))
    out[f"{prefix}ADDRESS_STATE"] = _text(_get(address, "state"))


def representative_person(customer: Any) -> Optional[Any]:
    """
    The person a contract should name for a customer.

    PERSON customers are their own person. For COMPANY customers the linked
    legal representative wins, then the primary contact, then the first link.
    """
    if customer is None:
        return None

    kind = _get(customer, "kind")
    if kind == "PERSON":
        return _get(customer, "person")

    if kind == "COMPANY":
        company = _get(customer, "company")
        links = [link for link in _live(_get(company, "links")) if _get(link, "person") is not None]
        for flag in ("is_legal_representative", "is_primary"):
            for link in links:
                if _get(link, flag) is True:
                    return _get(link, "person")
        if links:
            return _get(links[0], "person")

    return None


def has_person_available(customer: Any) -> bool:
    return representative_person(customer) is not None


def _whole_number_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def build_auto_placeholders(
    customer: Any = None,
    project: Any = None,
    project_id: Optional[str] = None,
    scope: Any = None,
    collaborator: Any = None,
    contract: Any = None,
    monthly_value: Any = None,
    months_count: Any = None,
    first_payment_day: Any = None,
    today: Optional[date] = None,
) -> dict[str, str]:
    """
    Build the flat variable map for a contract.

    Args:
        customer: Customer with its person/company, addresses and links loaded
        project: Project, if any
        project_id: used for PROJECT_ID when the project object is missing
        scope: ProjectScope, if any
        collaborator: User who is the contracting party of a collaborator contract
        contract: Contract (or mapping) for self-referential CONTRACT_* keys
        monthly_value, months_count, first_payment_day: payment terms
        today: reference date for DATE_EXT

    Returns:
        dict of placeholder key -> string value
    """
    out: dict[str, str] = {}

    if customer is not None:
        _apply_registry(out, CUSTOMER_PREFIX, CUSTOMER_FIELDS, customer)
        company = _get(customer, "company")
        if _get(customer, "kind") == "COMPANY" and company is not None:
            _apply_registry(out, CUSTOMER_PREFIX, COMPANY_FIELDS, company)
            _apply_address(out, CUSTOMER_PREFIX, _get(company, "addresses"))
        _apply_dynamic(out, CUSTOMER_PREFIX, customer)
    else:
        _apply_registry(out, CUSTOMER_PREFIX, CUSTOMER_FIELDS, {})

    person = representative_person(customer)
    if person is not None:
        _apply_registry(out, PERSON_PREFIX, PERSON_FIELDS, person)
        _apply_address(out, PERSON_PREFIX, _get(person, "addresses"))
        _apply_dynamic(out, PERSON_PREFIX, person)
        # From the raw name, after the dynamic pass so nothing overwrites it
        raw_name = str(_get(person, "full_name") or "").strip()
        out["PERSON_NAME_UPPERCASE"] = (raw_name or out["PERSON_NAME"]).upper()

    _apply_registry(out, PROJECT_PREFIX, PROJECT_FIELDS, project or {})
    if not out["PROJECT_ID"] and project_id:
        out["PROJECT_ID"] = str(project_id)
    _apply_dynamic(out, PROJECT_PREFIX, project)

    out["SCOPE_HTML"] = _text(_get(scope, "scope_html"))
    out["SCOPE_ID"] = _text(_get(scope, "id"))
    out["SCOPE_VERSION"] = _text(_get(scope, "version"))

    out["CONTRACT_ID"] = _text(_get(contract, "id"))
    out["CONTRACT_TITLE"] = _text(_get(contract, "title"))
    out["CONTRACT_STATUS"] = _text(_get(contract, "status"))

    if collaborator is not None and _get(collaborator, "id"):
        _apply_registry(out, COLLABORATOR_PREFIX, COLLABORATOR_FIELDS, collaborator)
        _apply_dynamic(out, COLLABORATOR_PREFIX, collaborator)

    # Payment terms: always present, empty when not given
    if monthly_value is not None:
        out["COLLABORATOR_VALUE"] = format_currency(monthly_value)
        out["COLLABORATOR_VALUE_EXT"] = capitalize_first(currency_to_words(monthly_value))
    else:
        out["COLLABORATOR_VALUE"] = ""
        out["COLLABORATOR_VALUE_EXT"] = ""

    if months_count is not None:
        out["CONTRACT_VALIDITY"] = _whole_number_text(months_count)
        out["CONTRACT_VALIDITY_EXT"] = capitalize_first(number_to_words(months_count))
    else:
        out["CONTRACT_VALIDITY"] = ""
        out["CONTRACT_VALIDITY_EXT"] = ""

    if first_payment_day is not None:
        out["FIRST_PAYMENT_DAY"] = _whole_number_text(first_payment_day)
        out["FIRST_PAYMENT_DAY_EXT"] = capitalize_first(number_to_words(first_payment_day))
    else:
        out["FIRST_PAYMENT_DAY"] = ""
        out["FIRST_PAYMENT_DAY_EXT"] = ""

    out["DATE_EXT"] = date_to_words(today)

    return out
