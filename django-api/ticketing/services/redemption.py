"""Door-side ticket verification and admission.

``verify_ticket`` only classifies. ``admit`` re-reads the order under a row
lock before marking it used, so two stations scanning the same ticket at
once get exactly one admission between them.
"""

import logging

from ticketing.domain import Order, OrderStatus
from ticketing.domain.results import TicketStatus, VerificationResult
from ticketing.domain.scan import ScanPayload, TicketEnvelope, parse_scan_payload
from ticketing.services.orders import OrderService
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)

NOT_FOUND = "Ticket not found. This may be a fake or invalid ticket."
NOT_PAID = "Payment not confirmed. Ticket is not valid yet."
WRONG_EVENT = "Ticket is for a different event."
ALREADY_USED = "This ticket has already been used!"
CANCELLED = "This ticket has been cancelled."
VALID = "Valid ticket! Ready for entry."
ADMITTED = "Entry granted! Ticket marked as used."


class RedemptionVerifier:
    def __init__(self, store: TicketingStore, orders: OrderService | None = None) -> None:
        self._store = store
        self._orders = orders or OrderService(store)

    def verify_ticket(self, scanned: str, event_id: str | None = None) -> VerificationResult:
        """Classify a scanned ticket without changing it."""
        payload = parse_scan_payload(scanned)
        order = self._lookup(payload, for_update=False)
        return self.classify(order, payload, event_id)

    def admit(
        self, scanned: str, event_id: str | None = None, staff: str | None = None
    ) -> VerificationResult:
        """Admit the holder of a valid ticket, marking the order used."""
        payload = parse_scan_payload(scanned)
        with self._store.atomic():
            order = self._lookup(payload, for_update=True)
            result = self.classify(order, payload, event_id)
            if result.status != TicketStatus.VALID:
                if result.status == TicketStatus.USED:
                    logger.warning(
                        "Duplicate admission attempt for %s (used at %s, by %s)",
                        payload.tx_ref,
                        order.used_at,
                        order.redeemed_by or "unknown",
                    )
                return result
            transition = self._orders.update_status(order.id, OrderStatus.USED, staff=staff)

        if not transition.success:
            logger.warning("Admission of %s failed: %s", payload.tx_ref, transition.error)
            return VerificationResult(
                status=TicketStatus.INVALID, message=transition.error.message, order=order
            )
        logger.info("Admitted %s (%s ticket(s))", payload.tx_ref, transition.order.ticket_count)
        return VerificationResult(
            status=TicketStatus.USED, message=ADMITTED, order=transition.order, admitted=True
        )

    @staticmethod
    def classify(
        order: Order | None, payload: ScanPayload, event_id: str | None = None
    ) -> VerificationResult:
        if order is None:
            return VerificationResult(status=TicketStatus.INVALID, message=NOT_FOUND)
        if isinstance(payload, TicketEnvelope) and payload.order_id:
            if payload.order_id.lower() != str(order.id):
                return VerificationResult(status=TicketStatus.INVALID, message=NOT_FOUND)
        if event_id and str(order.event_id) != event_id.strip().lower():
            return VerificationResult(status=TicketStatus.INVALID, message=WRONG_EVENT, order=order)

        if order.status == OrderStatus.USED:
            return VerificationResult(status=TicketStatus.USED, message=ALREADY_USED, order=order)
        if order.status == OrderStatus.CANCELLED:
            return VerificationResult(status=TicketStatus.CANCELLED, message=CANCELLED, order=order)
        if order.status == OrderStatus.PENDING:
            return VerificationResult(status=TicketStatus.INVALID, message=NOT_PAID, order=order)
        return VerificationResult(status=TicketStatus.VALID, message=VALID, order=order)

    def _lookup(self, payload: ScanPayload, for_update: bool) -> Order | None:
        if not payload.tx_ref:
            return None
        return self._store.get_order_by_reference(payload.tx_ref, for_update=for_update)
