from django.contrib import admin

from ticketing.models import Event, Order, OrderLine, PromoCode, TicketTier


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    extra = 1
    readonly_fields = ["sold"]


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0
    readonly_fields = ["tier_id", "tier_name", "quantity", "unit_price"]
    can_delete = False


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "location", "date", "status"]
    search_fields = ["title", "location"]
    list_filter = ["status"]
    inlines = [TicketTierInline]


@admin.register(TicketTier)
class TicketTierAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "capacity", "sold", "max_per_person"]
    list_filter = ["event"]
    readonly_fields = ["sold"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["tx_ref", "event_title", "customer_name", "total", "status", "created_at"]
    list_filter = ["status", "payment_method", "event"]
    search_fields = ["tx_ref", "customer_name", "customer_email"]
    readonly_fields = ["status", "confirmed_at", "used_at", "redeemed_by", "promo_counted"]
    inlines = [OrderLineInline]


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = ["code", "discount_type", "discount_value", "used_count", "max_uses", "is_active"]
    list_filter = ["discount_type", "is_active"]
    search_fields = ["code"]
    readonly_fields = ["used_count"]
