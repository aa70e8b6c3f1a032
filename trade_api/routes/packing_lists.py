"""
Packing-list endpoints: generate a sealed list, verify a returned one.

A seal mismatch answers 400 with ``isValid: false``; it is reported, not
raised.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trade_api.deps import get_clock, get_codec, get_session
from trade_api.schemas import GeneratePackingListIn, VerifyPackingListIn
from trade_kernel.domain.attestation import AttestationCodec
from trade_kernel.domain.clock import Clock
from trade_kernel.domain.packing_list import PackingLine, PackingListRequest
from trade_kernel.exceptions import MissingSealError
from trade_kernel.services.packing_list_service import PackingListService

router = APIRouter(prefix="/api", tags=["packing-lists"])


def _to_request(body: GeneratePackingListIn) -> PackingListRequest:
    order = body.orderData
    return PackingListRequest(
        reference_number=body.referenceNumber or "",
        exporter_company=body.exporterCompany or "",
        consignee_company=body.consigneeCompany or "",
        lines=tuple(
            PackingLine(
                part_number=line.part_number or "",
                description=line.description or "",
                quantity=line.quantity or 0,
                unit_of_measure=line.uom or "UNIT",
                unit_price=line.unit_price or 0,
                line_status=line.line_status or "Pending",
                weight=line.weight,
                volume=line.volume,
            )
            for line in body.lineItems
        ),
        order_id=order.order_id if order else None,
        order_number=order.order_number if order else None,
        invoice_number=order.invoice_number if order else None,
        currency=(order.currency if order else None) or "USD",
        supplier_contact=(order.supplier_contact if order else None) or "",
        buyer_contact=(order.buyer_contact if order else None) or "",
        estimated_ship_date=body.estimatedShipDate,
        port_of_loading=body.portOfLoading,
        port_of_discharge=body.portOfDischarge,
        incoterm=body.incoterm,
        special_instructions=body.specialInstructions or "",
    )


@router.post("/generate-vpl")
def generate_packing_list(
    body: GeneratePackingListIn,
    session: Session = Depends(get_session),
    codec: AttestationCodec = Depends(get_codec),
    clock: Clock = Depends(get_clock),
):
    sealed = PackingListService(session, codec, clock=clock).generate(_to_request(body))
    return {
        "success": True,
        "vplData": sealed.payload,
        "message": "Virtual Packing List generated successfully with security verification",
    }


@router.post("/verify-vpl")
def verify_packing_list(
    body: VerifyPackingListIn,
    session: Session = Depends(get_session),
    codec: AttestationCodec = Depends(get_codec),
):
    service = PackingListService(session, codec)
    try:
        result = service.verify(body.vplData)
    except MissingSealError as exc:
        return JSONResponse(
            status_code=400,
            content={"success": False, "isValid": False, "error": str(exc), "code": exc.code},
        )

    if result.is_valid:
        return {
            "success": True,
            "isValid": True,
            "message": "VPL is authentic and has not been tampered with",
            "vplData": body.vplData,
        }
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "isValid": False,
            "error": "VPL has been tampered with or is invalid",
            "details": "Security hash mismatch",
        },
    )
