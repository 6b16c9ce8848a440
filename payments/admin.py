from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('reference', 'event', 'customer_email', 'amount', 'status', 'paid_at', 'created_at')
    search_fields = ('reference', 'customer_email', 'event__title')
    list_filter = ('status', 'created_at', 'paid_at')
    list_select_related = ('event',)
    # состав заказа и ответ шлюза только для просмотра
    readonly_fields = ('reference', 'amount', 'currency', 'platform_fee', 'organizer_amount', 'gateway_fee',
                       'metadata', 'webhook_payload', 'paid_at', 'created_at', 'updated_at')
