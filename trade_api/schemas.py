"""
Request bodies for the HTTP surface.

Field names follow the wire format the trading clients already send
(lower-case ``orderid``, ``userid``; PascalCase line-item keys).  Required
fields are Optional here on purpose: the services report every missing
field by name with a 400, instead of a generic schema error.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MilestoneActionIn(BaseModel):
    orderid: int | None = None
    userid: int | None = None


class ManualMilestoneIn(BaseModel):
    orderid: int | None = None
    userid: int | None = None
    milestonetype: str | None = None
    title: str | None = None
    description: str | None = None
    duedate: datetime | None = None
    priority: str = "medium"


class MilestoneStatusIn(BaseModel):
    status: str | None = None
    completedbyuserid: int | None = None


class CommunicationIn(BaseModel):
    orderid: int | None = None
    userid: int | None = None
    messagetype: str | None = None
    subject: str | None = None
    messagebody: str | None = None
    priority: str = "normal"


class LineItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    part_number: str | None = Field(None, validation_alias=AliasChoices("PartNumber", "partNumber"))
    description: str | None = Field(None, validation_alias=AliasChoices("Description", "description"))
    quantity: Any = Field(0, validation_alias=AliasChoices("Quantity", "quantity"))
    uom: str | None = Field(None, validation_alias=AliasChoices("UOM", "unitOfMeasure"))
    unit_price: Any = Field(0, validation_alias=AliasChoices("UnitPrice", "unitPrice"))
    line_status: str | None = Field(None, validation_alias=AliasChoices("LineStatus", "lineStatus"))
    weight: Any = Field(None, validation_alias=AliasChoices("Weight", "weight"))
    volume: Any = Field(None, validation_alias=AliasChoices("Volume", "volume"))


class OrderDataIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    order_id: int | None = Field(None, validation_alias=AliasChoices("Orderid", "orderId", "orderid"))
    order_number: str | None = Field(None, validation_alias=AliasChoices("orderNumber", "OrderNumber"))
    invoice_number: str | None = Field(None, validation_alias=AliasChoices("invoiceNumber", "InvoiceNumber"))
    currency: str | None = None
    supplier_contact: str | None = Field(None, validation_alias=AliasChoices("supplierContact"))
    buyer_contact: str | None = Field(None, validation_alias=AliasChoices("buyerContact"))


class GeneratePackingListIn(BaseModel):
    referenceNumber: str | None = None
    orderData: OrderDataIn | None = None
    lineItems: list[LineItemIn] = Field(default_factory=list)
    exporterCompany: str | None = None
    consigneeCompany: str | None = None
    estimatedShipDate: str | None = None
    portOfLoading: str | None = None
    portOfDischarge: str | None = None
    incoterm: str | None = None
    specialInstructions: str | None = None


class VerifyPackingListIn(BaseModel):
    vplData: dict[str, Any] | None = None


class BookingIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bookingreference: str | None = None
    bookingdate: str | None = None
    loadtype: str | None = None
    tptdetail1: str | None = None
    tptdetail2: str | None = None
    masterno: str | None = None
    houseno: str | None = None
    firstvessel: str | None = None
    vesselcallsign: str | None = None
    portofloading: str | None = None
    destination: str | None = None
    estimatedarrival: str | None = None
    estimatedpickup: str | None = None
    status: int | str | None = None
    shipcarrier: str | None = None
    orderid: int | None = None


class BookingLinkIn(BaseModel):
    orderid: int | None = None
    pobookingid: int | None = None
    bookedqty: float | None = None
