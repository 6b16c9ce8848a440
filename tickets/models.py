# tickets/models.py
from django.conf import settings
from django.db import models

from events.models import Event, TicketTier


class Ticket(models.Model):
    """Один билет = одно место. Цена фиксируется на момент выпуска."""

    class Status(models.TextChoices):
        ACTIVE = 'ACTIVE', 'Действителен'
        CANCELLED = 'CANCELLED', 'Отменён'
        USED = 'USED', 'Использован'
        REFUNDED = 'REFUNDED', 'Возвращён'

    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='tickets', verbose_name='Событие')
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name='tickets', verbose_name='Тариф')
    # пусто у бесплатных билетов
    payment = models.ForeignKey(
        'payments.Payment', on_delete=models.SET_NULL, related_name='tickets',
        null=True, blank=True, verbose_name='Платёж',
    )
    # покупатель, если был авторизован
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, related_name='tickets',
        null=True, blank=True, verbose_name='Покупатель',
    )

    price = models.PositiveIntegerField('Цена, kobo', default=0)
    attendee_name = models.CharField('Имя участника', max_length=100)
    attendee_email = models.EmailField('Email участника', max_length=255)
    attendee_phone = models.CharField('Телефон участника', max_length=20, blank=True)

    confirmation_code = models.CharField('Код подтверждения', max_length=8, unique=True)
    status = models.CharField('Статус', max_length=16, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    used_at = models.DateTimeField('Использован', null=True, blank=True)
    cancelled_at = models.DateTimeField('Отменён', null=True, blank=True)

    created_at = models.DateTimeField('Создан', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлён', auto_now=True)

    class Meta:
        ordering = ['-created_at', 'id']
        verbose_name = 'Билет'
        verbose_name_plural = 'Билеты'
        indexes = [
            models.Index(fields=['event', 'attendee_email'], name='ticket_event_email_idx'),
        ]

    def __str__(self):
        return f'{self.confirmation_code} / {self.event.title}'
