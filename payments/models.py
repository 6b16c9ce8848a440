from django.db import models


class Payment(models.Model):
    """
    Платёж покупателя через шлюз. Создаётся PENDING при оформлении заказа,
    в COMPLETED/FAILED переводится только выдачей билетов (payments.services).
    """

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Ожидает оплаты'
        COMPLETED = 'COMPLETED', 'Оплачен'
        FAILED = 'FAILED', 'Ошибка'
        REFUNDED = 'REFUNDED', 'Возвращён'
        CANCELLED = 'CANCELLED', 'Отменён'

    reference = models.CharField('Референс шлюза', max_length=100, unique=True)
    event = models.ForeignKey('events.Event', on_delete=models.PROTECT, related_name='payments', verbose_name='Событие')
    user = models.ForeignKey(
        'users.User', on_delete=models.SET_NULL, related_name='payments',
        null=True, blank=True, verbose_name='Покупатель',
    )
    customer_email = models.EmailField('Email плательщика', max_length=255)

    # все суммы в kobo; amount списывается с покупателя
    amount = models.PositiveIntegerField('Сумма')
    currency = models.CharField('Валюта', max_length=3, default='NGN')
    status = models.CharField('Статус', max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    platform_fee = models.PositiveIntegerField('Комиссия платформы', default=0)
    organizer_amount = models.PositiveIntegerField('Организатору', default=0)
    gateway_fee = models.PositiveIntegerField('Комиссия шлюза', default=0)

    metadata = models.JSONField('Состав заказа', default=dict, blank=True)
    webhook_payload = models.JSONField('Данные шлюза', null=True, blank=True)
    failure_reason = models.CharField('Причина ошибки', max_length=255, blank=True)

    paid_at = models.DateTimeField('Оплачен', null=True, blank=True)
    created_at = models.DateTimeField('Создан', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлён', auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Платёж'
        verbose_name_plural = 'Платежи'

    def __str__(self):
        return f'{self.reference} -> {self.status}'
