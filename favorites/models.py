from django.conf import settings
from django.db import models


class Favorite(models.Model):
    """Мероприятие, сохранённое пользователем; одна запись на пару пользователь-событие."""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='favorites', verbose_name='Пользователь',
    )
    event = models.ForeignKey(
        'events.Event', on_delete=models.CASCADE, related_name='favorited_by', verbose_name='Событие',
    )
    created_at = models.DateTimeField('Добавлено', auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Избранное'
        verbose_name_plural = 'Избранное'
        constraints = [
            models.UniqueConstraint(fields=['user', 'event'], name='favorite_user_event_uniq'),
        ]

    def __str__(self) -> str:
        return f'{self.user} -> {self.event.title}'
