from ticketing.services.inventory import InventoryLedger
from ticketing.services.orders import OrderService
from ticketing.services.promo_codes import PromoCodeEngine
from ticketing.services.redemption import RedemptionVerifier

__all__ = ["InventoryLedger", "OrderService", "PromoCodeEngine", "RedemptionVerifier"]
