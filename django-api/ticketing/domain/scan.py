"""Scanned ticket payloads.

A door scanner hands over either a bare payment reference (typed or
read from a plain QR code) or the JSON envelope printed on issued tickets::

    {"orderId": "...", "txRef": "SOP-...", "event": "...", "tickets": 2}

The payload is parsed once here; the verifier only sees the tagged union.
"""

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class TicketReference:
    tx_ref: str


@dataclass(frozen=True)
class TicketEnvelope:
    tx_ref: str
    order_id: str | None = None
    event: str | None = None
    ticket_count: int | None = None


ScanPayload = TicketReference | TicketEnvelope


def normalize_reference(value: str) -> str:
    return value.strip().upper()


def parse_scan_payload(raw: str) -> ScanPayload:
    """Parse scanner input, falling back to treating it as a reference."""
    text = (raw or "").strip()
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return TicketReference(tx_ref=normalize_reference(text))

    if not isinstance(data, dict):
        return TicketReference(tx_ref=normalize_reference(text))

    tx_ref = data.get("txRef")
    if not isinstance(tx_ref, str) or not tx_ref.strip():
        return TicketReference(tx_ref=normalize_reference(text))

    order_id = data.get("orderId")
    event = data.get("event")
    tickets = data.get("tickets")
    return TicketEnvelope(
        tx_ref=normalize_reference(tx_ref),
        order_id=str(order_id) if order_id is not None else None,
        event=str(event) if event is not None else None,
        ticket_count=tickets if isinstance(tickets, int) and not isinstance(tickets, bool) else None,
    )
