"""
Packing-list construction (``trade_kernel.domain.packing_list``).

Builds the structure that the exporter hands to the importer: company,
shipping and order details, numbered line items and a summary of totals.
The result contains only JSON-native values (str, int, float, dict, list)
so that it survives a JSON round trip unchanged and its seal stays valid.

Pure functions and frozen value objects, no I/O.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from trade_kernel.exceptions import MissingFieldError


@dataclass(frozen=True)
class PackingLine:
    """One line as supplied by the exporter.

    ``weight`` and ``volume`` may arrive as a list of candidate readings;
    the first non-null reading is used.
    """

    part_number: str = ""
    description: str = ""
    quantity: Decimal | int | float = 0
    unit_of_measure: str = "UNIT"
    unit_price: Decimal | int | float = 0
    line_status: str = "Pending"
    weight: Any = None
    volume: Any = None


@dataclass(frozen=True)
class PackingListRequest:
    reference_number: str
    exporter_company: str
    consignee_company: str
    lines: Sequence[PackingLine] = field(default_factory=tuple)
    order_id: int | None = None
    order_number: str | None = None
    invoice_number: str | None = None
    currency: str = "USD"
    supplier_contact: str = ""
    buyer_contact: str = ""
    estimated_ship_date: date | str | None = None
    port_of_loading: str | None = None
    port_of_discharge: str | None = None
    incoterm: str | None = None
    special_instructions: str = ""


@dataclass(frozen=True)
class PackingSummary:
    total_lines: int
    total_quantity: Decimal
    total_value: Decimal
    total_weight: Decimal
    total_volume: Decimal


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        return Decimal(0)
    try:
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, float):
            parsed = Decimal(repr(value))
        else:
            parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal(0)
    return parsed if parsed.is_finite() else Decimal(0)


def first_reading(value: Any) -> Decimal:
    """Collapse a scalar-or-list measurement to one number (0 if absent)."""
    if isinstance(value, (list, tuple)):
        value = next((v for v in value if v is not None), None)
    return _to_decimal(value)


def json_number(value: Decimal) -> int | float:
    """Integral values become int, everything else float."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def summarize(lines: Sequence[PackingLine]) -> PackingSummary:
    total_quantity = Decimal(0)
    total_value = Decimal(0)
    total_weight = Decimal(0)
    total_volume = Decimal(0)
    for line in lines:
        quantity = _to_decimal(line.quantity)
        total_quantity += quantity
        total_value += quantity * _to_decimal(line.unit_price)
        total_weight += first_reading(line.weight)
        total_volume += first_reading(line.volume)
    return PackingSummary(
        total_lines=len(lines),
        total_quantity=total_quantity,
        total_value=total_value,
        total_weight=total_weight,
        total_volume=total_volume,
    )


def build_packing_list(request: PackingListRequest, generated_at: datetime) -> dict[str, Any]:
    """
    Build the unsealed packing-list payload.

    Raises:
        MissingFieldError: reference number or either company is blank.
    """
    missing = [
        name
        for name, value in (
            ("referenceNumber", request.reference_number),
            ("exporterCompany", request.exporter_company),
            ("consigneeCompany", request.consignee_company),
        )
        if not value
    ]
    if missing:
        raise MissingFieldError(missing)

    ship_date = request.estimated_ship_date
    if isinstance(ship_date, date):
        ship_date = ship_date.isoformat()

    line_items = []
    for index, line in enumerate(request.lines, start=1):
        quantity = _to_decimal(line.quantity)
        unit_price = _to_decimal(line.unit_price)
        line_items.append({
            "lineNumber": index,
            "partNumber": line.part_number or "",
            "description": line.description or "",
            "quantity": json_number(quantity),
            "unitOfMeasure": line.unit_of_measure or "UNIT",
            "unitPrice": json_number(unit_price),
            "lineTotal": json_number(quantity * unit_price),
            "lineStatus": line.line_status or "Pending",
            "weight": json_number(first_reading(line.weight)),
            "volume": json_number(first_reading(line.volume)),
        })

    summary = summarize(request.lines)

    return {
        "referenceNumber": request.reference_number,
        "dateGenerated": generated_at.isoformat(),
        "estimatedShipDate": ship_date,
        "exporter": {
            "company": request.exporter_company,
            "contact": request.supplier_contact or "",
        },
        "consignee": {
            "company": request.consignee_company,
            "contact": request.buyer_contact or "",
        },
        "shipping": {
            "portOfLoading": request.port_of_loading,
            "portOfDischarge": request.port_of_discharge,
            "incoterm": request.incoterm,
            "specialInstructions": request.special_instructions or "",
        },
        "orderDetails": {
            "orderNumber": request.order_number,
            "orderType": "Export",
            "currency": request.currency or "USD",
        },
        "lineItems": line_items,
        "summary": {
            "totalLines": summary.total_lines,
            "totalQuantity": json_number(summary.total_quantity),
            "totalValue": json_number(summary.total_value),
            "totalWeight": json_number(summary.total_weight),
            "totalVolume": json_number(summary.total_volume),
        },
    }
