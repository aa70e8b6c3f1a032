"""
PackingListService -- generate, seal, record and verify packing lists.

Responsibility:
    ``generate`` builds the packing-list structure, seals it with the
    deployment's AttestationCodec and records a PackingListReference so the
    issuing side keeps the exact sealed document.  ``verify`` checks a
    document handed back by the receiving side.

Architecture position:
    Kernel > Services.  Stateless apart from the session; the codec is
    shared and safe for concurrent use.

Failure modes:
    - MissingFieldError: reference number or a company is blank.
    - DuplicateReferenceError: the reference number was already issued.
    - OrderNotFoundError: an order id was supplied but does not exist.
    - MissingSealError: ``verify`` was given a document without a seal.
    A seal mismatch is not an error: ``verify`` returns is_valid=False.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trade_kernel.db.engine import unit_of_work
from trade_kernel.domain.attestation import AttestationCodec, SealVerification
from trade_kernel.domain.clock import Clock
from trade_kernel.domain.packing_list import (
    PackingListRequest,
    build_packing_list,
    summarize,
)
from trade_kernel.exceptions import (
    DuplicateReferenceError,
    MissingSealError,
    OrderNotFoundError,
    PackingListNotFoundError,
)
from trade_kernel.logging_config import get_logger
from trade_kernel.models.order import Order
from trade_kernel.models.packing_list import PackingListReference
from trade_kernel.services.base import BaseService
from trade_kernel.utils.hashing import hash_payload

logger = get_logger("services.packing_list")


@dataclass(frozen=True)
class SealedPackingList:
    reference_id: int
    reference_number: str
    seal: str
    payload: dict[str, Any]


@dataclass(frozen=True)
class PackingListRecord:
    """Stored reference to an issued packing list."""

    id: int
    reference_number: str
    base_invoice_number: str | None
    export_order_id: int | None
    exporter_company: str | None
    consignee_company: str | None
    status: str
    total_lines: int
    security_hash: str
    payload: dict[str, Any]


def _parse_ship_date(value: date | str | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


class PackingListService(BaseService[PackingListReference]):
    """Issues and checks sealed packing lists."""

    def __init__(
        self,
        session: Session,
        codec: AttestationCodec,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, auto_commit=auto_commit)
        self.codec = codec

    def generate(self, request: PackingListRequest) -> SealedPackingList:
        """
        Build, seal and record a packing list.

        Postconditions:
            - The returned payload carries the seal under ``codec.seal_field``
              and verifies as valid.
            - One PackingListReference row with status "Generated" exists
              for ``request.reference_number``.
        """
        now = self.clock.now()
        sealed = self.codec.generate(build_packing_list(request, now))
        seal = sealed[self.codec.seal_field]
        summary = summarize(request.lines)

        try:
            with unit_of_work(self.session, commit=self.auto_commit):
                exists = self.session.scalars(
                    select(PackingListReference.id).where(
                        PackingListReference.reference_number == request.reference_number
                    )
                ).first()
                if exists is not None:
                    raise DuplicateReferenceError(request.reference_number)
                if request.order_id is not None and self.session.get(Order, request.order_id) is None:
                    raise OrderNotFoundError(request.order_id)

                row = PackingListReference(
                    reference_number=request.reference_number,
                    base_invoice_number=request.invoice_number
                    or f"INV-{self.clock.epoch_millis()}",
                    export_order_id=request.order_id,
                    exporter_company=request.exporter_company,
                    consignee_company=request.consignee_company,
                    status="Generated",
                    total_lines=summary.total_lines,
                    total_quantity=summary.total_quantity,
                    total_value=summary.total_value,
                    estimated_ship_date=_parse_ship_date(request.estimated_ship_date),
                    security_hash=seal,
                    json_data=json.dumps(sealed),
                    payload_hash=hash_payload(sealed),
                )
                self.session.add(row)
        except IntegrityError as exc:
            raise DuplicateReferenceError(request.reference_number) from exc

        logger.info(
            "packing_list_generated",
            extra={
                "reference_number": request.reference_number,
                "total_lines": summary.total_lines,
                "seal_prefix": seal[:8],
            },
        )
        return SealedPackingList(
            reference_id=row.id,
            reference_number=request.reference_number,
            seal=seal,
            payload=sealed,
        )

    def verify(self, sealed_payload: Mapping[str, Any]) -> SealVerification:
        """
        Check a sealed packing list.

        Raises:
            MissingSealError: the payload is empty or carries no seal.
        """
        if not sealed_payload or not isinstance(sealed_payload, Mapping):
            raise MissingSealError(self.codec.seal_field)
        if not sealed_payload.get(self.codec.seal_field):
            raise MissingSealError(self.codec.seal_field)
        return self.codec.verify(sealed_payload)

    def get_reference(self, reference_number: str) -> PackingListRecord:
        row = self.session.scalars(
            select(PackingListReference).where(
                PackingListReference.reference_number == reference_number
            )
        ).first()
        if row is None:
            raise PackingListNotFoundError(reference_number)
        return PackingListRecord(
            id=row.id,
            reference_number=row.reference_number,
            base_invoice_number=row.base_invoice_number,
            export_order_id=row.export_order_id,
            exporter_company=row.exporter_company,
            consignee_company=row.consignee_company,
            status=row.status,
            total_lines=row.total_lines,
            security_hash=row.security_hash,
            payload=json.loads(row.json_data),
        )
