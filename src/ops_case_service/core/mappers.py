"""Per-family mapping functions from raw upstream records to UnifiedCase.

Each mapper is a pure function of one raw record. Missing nested objects
(handler, customer, supplier, linked type) never raise; documented fallback
labels are used instead.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from ops_case_service.core.clock import parse_timestamp
from ops_case_service.core.evaluation import extract_evaluation
from ops_case_service.models.case import UNASSIGNED_HANDLER, CaseType, UnifiedCase

CUSTOMER_FALLBACK = "Khách hàng"
SUPPLIER_FALLBACK = "Nhà cung cấp"
INTERNAL_FALLBACK = "Nội bộ"


@dataclass(frozen=True)
class MappingContext:
    """Settings a mapper needs besides the record itself."""

    tz: ZoneInfo
    organization_name: str = "Smart Services"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def first_text(*values: Any) -> Optional[str]:
    """First non-blank value, as a string."""
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def resolve_party_name(party: Any, freeform: Any = None, default: str = "") -> str:
    """Display name of a person or organization.

    Priority: short display name, then full (legal) name, then freeform text.
    """
    party = _as_dict(party)
    return (
        first_text(
            party.get("shortName"),
            party.get("fullCompanyName"),
            party.get("fullName"),
            freeform,
        )
        or default
    )


def format_title(title: Any, form: Any) -> str:
    """Prefix the title with the work form line when one is recorded."""
    title_text = _text(title) or ""
    form_text = _text(form)
    if form_text:
        return f"Hình thức: {form_text}\n{title_text}"
    return title_text


def format_product_lines(products: Any) -> Optional[str]:
    """Render line items as ``**name** | SL: qty | Mã: code`` rows."""
    if not isinstance(products, list):
        return None
    lines = []
    for product in products:
        if not isinstance(product, dict):
            continue
        name = _text(product.get("name")) or ""
        quantity = product.get("quantity")
        quantity_text = "" if quantity is None else str(quantity)
        code = first_text(product.get("code"), product.get("serialNumber")) or ""
        lines.append(f"**{name}** | SL: {quantity_text} | Mã: {code}")
    return "\n".join(lines) or None


def resolve_type_label(raw: Dict[str, Any], keys: Iterable[str], default: str) -> str:
    """Subtype label: linked type object's name, then a legacy flat string."""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, dict):
            name = _text(value.get("name"))
            if name:
                return name
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def _base_case(raw: Dict[str, Any], case_type: CaseType, ctx: MappingContext) -> Dict[str, Any]:
    case_id = first_text(raw.get("id"))
    if case_id is None:
        raise ValueError(f"{case_type.value} record without id")

    handler = _as_dict(raw.get("handler"))
    return {
        "id": case_id,
        "type": case_type,
        "title": format_title(raw.get("title"), raw.get("form")),
        "description": _text(raw.get("description")) or "",
        "handler_name": resolve_party_name(handler, raw.get("handlerName"), UNASSIGNED_HANDLER),
        "handler_avatar": _text(handler.get("avatar")),
        "status": _text(raw.get("status")) or "",
        "start_date": parse_timestamp(raw.get("startDate"), ctx.tz),
        "end_date": parse_timestamp(raw.get("endDate"), ctx.tz),
        "in_progress_at": parse_timestamp(raw.get("inProgressAt"), ctx.tz),
        "created_at": parse_timestamp(raw.get("createdAt"), ctx.tz),
        "updated_at": parse_timestamp(raw.get("updatedAt"), ctx.tz),
        "evaluation": extract_evaluation(raw),
    }


def map_internal(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.INTERNAL, ctx)
    requester = resolve_party_name(raw.get("requester"), default=INTERNAL_FALLBACK)
    fields["customer_name"] = f"{ctx.organization_name}\n{requester}"
    fields["case_type"] = resolve_type_label(raw, ("caseType",), "Nội bộ")
    return UnifiedCase(**fields)


def map_delivery(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.DELIVERY, ctx)
    fields["description"] = format_product_lines(raw.get("products")) or fields["description"]
    fields["customer_name"] = resolve_party_name(
        raw.get("customer"), raw.get("customerName"), CUSTOMER_FALLBACK
    )
    fields["case_type"] = "Giao hàng"
    return UnifiedCase(**fields)


def map_receiving(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.RECEIVING, ctx)
    description = format_product_lines(raw.get("products")) or fields["description"]
    notes = _text(raw.get("notes"))
    if notes:
        note_line = f"*Ghi chú: {notes}*"
        description = f"{description}\n{note_line}" if description else note_line
    fields["description"] = description
    fields["customer_name"] = resolve_party_name(
        raw.get("supplier"), raw.get("supplierName"), SUPPLIER_FALLBACK
    )
    fields["case_type"] = "Nhận hàng"
    return UnifiedCase(**fields)


def map_maintenance(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.MAINTENANCE, ctx)
    fields["customer_name"] = resolve_party_name(
        raw.get("customer"), raw.get("customerName"), CUSTOMER_FALLBACK
    )
    fields["case_type"] = resolve_type_label(
        raw, ("maintenanceCaseType", "maintenanceType", "caseType"), "Bảo trì"
    )
    return UnifiedCase(**fields)


def map_incident(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.INCIDENT, ctx)
    fields["customer_name"] = resolve_party_name(
        raw.get("customer"), raw.get("customerName"), CUSTOMER_FALLBACK
    )
    fields["case_type"] = resolve_type_label(raw, ("incidentCaseType", "incidentType"), "Sự cố")
    return UnifiedCase(**fields)


def map_warranty(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.WARRANTY, ctx)
    fields["customer_name"] = resolve_party_name(
        raw.get("customer"), raw.get("customerName"), CUSTOMER_FALLBACK
    )
    fields["case_type"] = resolve_type_label(raw, ("warrantyCaseType", "warrantyType"), "Bảo hành")
    return UnifiedCase(**fields)


def map_deployment(raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    fields = _base_case(raw, CaseType.DEPLOYMENT, ctx)
    fields["customer_name"] = resolve_party_name(
        raw.get("customer"), raw.get("customerName"), CUSTOMER_FALLBACK
    )
    fields["case_type"] = resolve_type_label(raw, ("deploymentType", "caseType"), "Triển khai")
    return UnifiedCase(**fields)
