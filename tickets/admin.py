from django.contrib import admin
from django.utils import timezone

from .models import Ticket


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ('confirmation_code', 'event', 'tier', 'attendee_name', 'attendee_email', 'price', 'status', 'created_at')
    list_filter = ('status', 'event')
    search_fields = ('confirmation_code', 'attendee_name', 'attendee_email', 'event__title')
    readonly_fields = ('confirmation_code', 'payment', 'price', 'created_at', 'updated_at')
    list_select_related = ('event', 'tier')
    actions = ['cancel_tickets']

    @admin.action(description="Отменить выбранные билеты")
    def cancel_tickets(self, request, queryset):
        updated = queryset.filter(status=Ticket.Status.ACTIVE).update(
            status=Ticket.Status.CANCELLED, cancelled_at=timezone.now()
        )
        self.message_user(request, f"Отменено билетов: {updated}")
