from django.contrib import admin

from .models import Payout
from .services import PayoutError, approve_payout, reject_payout, settle_payout


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ('id', 'organizer', 'amount', 'status', 'account_name', 'bank_code', 'created_at', 'processed_at')
    list_filter = ('status', 'created_at')
    search_fields = ('organizer__username', 'organizer__email', 'account_name', 'transfer_reference')
    readonly_fields = ('transfer_reference', 'transfer_code', 'processed_by', 'processed_at', 'created_at', 'updated_at')
    list_select_related = ('organizer',)
    actions = ['approve_selected', 'reject_selected', 'mark_completed', 'mark_failed']

    def _run(self, request, queryset, func, label):
        done, errors = 0, []
        for payout in queryset:
            try:
                func(payout)
                done += 1
            except PayoutError as e:
                errors.append(f"#{payout.pk}: {e}")
        msg = f"{label}: {done}"
        if errors:
            msg += ". Пропущено: " + "; ".join(errors)
        self.message_user(request, msg)

    @admin.action(description="Одобрить и отправить перевод")
    def approve_selected(self, request, queryset):
        self._run(request, queryset, lambda p: approve_payout(p.pk, request.user), "Одобрено")

    @admin.action(description="Отклонить")
    def reject_selected(self, request, queryset):
        self._run(request, queryset, lambda p: reject_payout(p.pk, request.user), "Отклонено")

    # ручная сверка переводов, по которым не пришёл вебхук
    @admin.action(description="Отметить выплаченными")
    def mark_completed(self, request, queryset):
        done = sum(settle_payout(p, True) for p in queryset.filter(status=Payout.Status.PROCESSING))
        self.message_user(request, f"Отмечено выплаченными: {done}")

    @admin.action(description="Отметить ошибку перевода")
    def mark_failed(self, request, queryset):
        done = sum(settle_payout(p, False, "Marked failed by admin")
                   for p in queryset.filter(status=Payout.Status.PROCESSING))
        self.message_user(request, f"Отмечено с ошибкой: {done}")
