# events/admin.py
from django.contrib import admin

from .models import Category, Event, TicketTier


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug')
    search_fields = ('name',)
    prepopulated_fields = {'slug': ('name',)}


def event_has_tiers(event: Event) -> bool:
    return event.is_free or event.ticket_tiers.exists()


# --- actions ---
@admin.action(description="Опубликовать")
def activate_events(modeladmin, request, queryset):
    approved = 0
    skipped = 0
    for ev in queryset.exclude(status=Event.Status.ACTIVE):
        if not event_has_tiers(ev):
            skipped += 1
            continue
        ev.status = Event.Status.ACTIVE
        ev.save(update_fields=["status", "updated_at"])
        approved += 1
    msg = f"Опубликовано: {approved}"
    if skipped:
        msg += f". Пропущено (нет тарифов): {skipped}"
    modeladmin.message_user(request, msg)


@admin.action(description="Приостановить")
def suspend_events(modeladmin, request, queryset):
    updated = queryset.filter(status=Event.Status.ACTIVE).update(status=Event.Status.SUSPENDED)
    modeladmin.message_user(request, f"Приостановлено: {updated}")


@admin.action(description="Отменить")
def cancel_events(modeladmin, request, queryset):
    updated = queryset.exclude(status=Event.Status.COMPLETED).update(status=Event.Status.CANCELLED)
    modeladmin.message_user(request, f"Отменено: {updated}")


@admin.action(description="Вернуть в черновик")
def mark_draft(modeladmin, request, queryset):
    updated = queryset.update(status=Event.Status.DRAFT)
    modeladmin.message_user(request, f"В черновики переведено: {updated}")


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    extra = 1
    fields = ('name', 'description', 'price', 'capacity')


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'category', 'organizer', 'event_type', 'starts_at', 'status', 'is_public')
    list_filter = ('status', 'event_type', 'category', 'is_public')
    search_fields = ('title', 'description', 'location', 'venue')
    prepopulated_fields = {'slug': ('title',)}
    inlines = [TicketTierInline]
    readonly_fields = ('views_count', 'created_at', 'updated_at')

    fieldsets = (
        (None, {
            "fields": ("title", "slug", "image", "category", "organizer", "description",
                       "event_type", "starts_at", "ends_at", "location", "venue")
        }),
        ("Публикация", {
            "fields": ("status", "is_public", "max_attendees")
        }),
        ("Системные", {
            "fields": ("views_count", "created_at", "updated_at"),
        }),
    )

    actions = [activate_events, suspend_events, cancel_events, mark_draft]
