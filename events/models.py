from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

# статусы билетов, которые занимают место в зале
SEAT_HOLDING_TICKET_STATUSES = ('ACTIVE', 'USED')


# генерация уникального слага
def generate_unique_slug(instance, value, slug_field_name: str = 'slug', max_len: int = 60) -> str:
    base = slugify(value) or 'event'
    base = base[:max_len]
    if base in getattr(instance, 'RESERVED_SLUGS', ()):
        base = f'{base}-event'[:max_len]
    slug = base
    Model = instance.__class__
    n = 2
    # если слаг занят, добавляем числовой суффикс
    while Model.objects.filter(**{slug_field_name: slug}).exclude(pk=instance.pk).exists():
        suffix = f'-{n}'
        slug = (base[:max_len - len(suffix)] + suffix)
        n += 1
    return slug


# категории мероприятий
class Category(models.Model):
    name = models.CharField('Название', max_length=120, unique=True)
    slug = models.SlugField('Слаг', max_length=140, unique=True)
    description = models.TextField('Описание', blank=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Категория'
        verbose_name_plural = 'Категории'

    def __str__(self):
        return self.name


# мероприятия
class Event(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'DRAFT', 'Черновик'
        ACTIVE = 'ACTIVE', 'Активно'
        CANCELLED = 'CANCELLED', 'Отменено'
        COMPLETED = 'COMPLETED', 'Завершено'
        SUSPENDED = 'SUSPENDED', 'Приостановлено'

    class EventType(models.TextChoices):
        FREE = 'FREE', 'Бесплатное'
        PAID = 'PAID', 'Платное'

    title = models.CharField('Название', max_length=255)
    slug = models.SlugField('Слаг', max_length=140, unique=True)
    image = models.ImageField('Афиша', upload_to='events/', blank=True, null=True)
    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name='events', verbose_name='Категория'
    )
    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='organized_events',
        verbose_name='Организатор',
    )

    description = models.TextField('Описание', blank=True)
    event_type = models.CharField('Тип', max_length=8, choices=EventType.choices, default=EventType.PAID)
    starts_at = models.DateTimeField('Дата и время начала')
    # может быть пустым, если длительность неизвестна
    ends_at = models.DateTimeField('Дата и время окончания', blank=True, null=True)
    location = models.CharField('Город / адрес', max_length=255)
    venue = models.CharField('Площадка', max_length=255, blank=True)

    status = models.CharField('Статус', max_length=16, choices=Status.choices, default=Status.DRAFT)
    is_public = models.BooleanField('Публичное', default=True)
    # вместимость бесплатного события; для платных ограничение задают тарифы
    max_attendees = models.PositiveIntegerField('Макс. участников', blank=True, null=True)
    views_count = models.PositiveIntegerField('Просмотры', default=0)

    created_at = models.DateTimeField('Создано', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлено', auto_now=True)

    # совпадают с маршрутами events/urls.py
    RESERVED_SLUGS = {"my", "create", "category"}

    class Meta:
        ordering = ['-starts_at']
        verbose_name = 'Мероприятие'
        verbose_name_plural = 'Мероприятия'
        indexes = [
            models.Index(fields=['status', 'starts_at'], name='event_status_starts_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if self.slug and self.slug in self.RESERVED_SLUGS:
            raise ValidationError({'slug': "This slug is reserved."})
        if self.ends_at and self.ends_at < self.starts_at:
            raise ValidationError({'ends_at': "End time must be after the start time."})

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = generate_unique_slug(self, self.title, max_len=140)
        super().save(*args, **kwargs)

    @property
    def is_free(self) -> bool:
        return self.event_type == self.EventType.FREE

    @property
    def is_past(self) -> bool:
        end = self.ends_at or self.starts_at
        return end < timezone.now()

    @property
    def is_bookable(self) -> bool:
        # можно ли сейчас получить билет
        return self.status == self.Status.ACTIVE and not self.is_past


# тариф (тип билета) конкретного мероприятия
class TicketTier(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='ticket_tiers', verbose_name='Событие')
    name = models.CharField('Название', max_length=100)
    description = models.CharField('Описание', max_length=255, blank=True)
    # в kobo
    price = models.PositiveIntegerField('Цена, kobo')
    # None: без ограничения
    capacity = models.PositiveIntegerField('Количество', blank=True, null=True)
    created_at = models.DateTimeField('Создано', auto_now_add=True)

    class Meta:
        ordering = ['price', 'id']
        verbose_name = 'Тариф'
        verbose_name_plural = 'Тарифы'

    def __str__(self):
        return f'{self.event.title} / {self.name}'

    @property
    def sold_count(self) -> int:
        return self.tickets.filter(status__in=SEAT_HOLDING_TICKET_STATUSES).count()

    @property
    def remaining(self):
        if self.capacity is None:
            return None
        return max(self.capacity - self.sold_count, 0)

    def has_room_for(self, quantity: int) -> bool:
        rem = self.remaining
        return rem is None or rem >= quantity
