from django.conf import settings
from django.db import models


class Payout(models.Model):
    """Заявка организатора на вывод заработанного."""

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'На рассмотрении'
        PROCESSING = 'PROCESSING', 'Перевод в обработке'
        COMPLETED = 'COMPLETED', 'Выплачено'
        FAILED = 'FAILED', 'Ошибка перевода'
        CANCELLED = 'CANCELLED', 'Отклонено'

    # эти заявки уменьшают доступный баланс
    RESERVING_STATUSES = (Status.PENDING, Status.PROCESSING, Status.COMPLETED)

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payouts', verbose_name='Организатор',
    )
    amount = models.PositiveIntegerField('Сумма, kobo')
    status = models.CharField('Статус', max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)

    bank_account = models.CharField('Номер счёта', max_length=10)
    bank_code = models.CharField('Код банка', max_length=20)
    account_name = models.CharField('Владелец счёта', max_length=255)
    reason = models.CharField('Комментарий', max_length=255, blank=True)

    transfer_reference = models.CharField('Референс перевода', max_length=100, unique=True, null=True, blank=True)
    transfer_code = models.CharField('Код перевода', max_length=100, blank=True)
    failure_reason = models.CharField('Причина ошибки', max_length=255, blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, related_name='processed_payouts',
        null=True, blank=True, verbose_name='Обработал',
    )
    processed_at = models.DateTimeField('Обработано', null=True, blank=True)

    created_at = models.DateTimeField('Создано', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлено', auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Вывод средств'
        verbose_name_plural = 'Выводы средств'

    def __str__(self):
        return f'Payout #{self.pk} {self.amount} ({self.get_status_display()})'

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bank_account and self.bank_code and self.account_name)
