from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Дополнительно", {"fields": ("phone", "avatar", "role", "email_verified_at")}),
    )
    list_display = ("username", "email", "role", "is_staff", "is_active")
    list_filter = ("role", "is_staff", "is_active")

    @admin.action(description="Назначить организатором")
    def make_organizer(self, request, queryset):
        updated = queryset.update(role=User.Role.ORGANIZER)
        self.message_user(request, f"Назначено организаторов: {updated}")

    @admin.action(description="Снять статус организатора")
    def remove_organizer(self, request, queryset):
        updated = queryset.filter(role=User.Role.ORGANIZER).update(role=User.Role.USER)
        self.message_user(request, f"Снят статус организатора у: {updated}")

    actions = ["make_organizer", "remove_organizer"]
