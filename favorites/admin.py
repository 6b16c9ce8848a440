from django.contrib import admin

from .models import Favorite


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'event', 'created_at')
    list_filter = ('event__category', 'created_at')
    search_fields = ('user__email', 'event__title', 'event__slug')
    list_select_related = ('user', 'event')
    raw_id_fields = ('user', 'event')
