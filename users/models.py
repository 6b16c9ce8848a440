from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    # Роли: закрытый набор, права проверяются на границе API (core.decorators)
    class Role(models.TextChoices):
        VISITOR = 'VISITOR', 'Гость'
        USER = 'USER', 'Покупатель'
        ORGANIZER = 'ORGANIZER', 'Организатор'
        ADMIN = 'ADMIN', 'Администратор'

    email = models.EmailField("Email", unique=True)
    phone = models.CharField("Телефон", max_length=20, blank=True)
    avatar = models.ImageField("Аватар", upload_to="avatars/", blank=True, null=True)
    role = models.CharField("Роль", max_length=16, choices=Role.choices, default=Role.USER, db_index=True)
    email_verified_at = models.DateTimeField("Email подтверждён", blank=True, null=True)

    def __str__(self):
        return self.username

    @property
    def is_organizer(self) -> bool:
        return self.role == self.Role.ORGANIZER

    @property
    def is_platform_admin(self) -> bool:
        return self.role == self.Role.ADMIN or self.is_staff or self.is_superuser

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
