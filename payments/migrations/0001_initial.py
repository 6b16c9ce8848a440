import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('events', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(max_length=100, unique=True, verbose_name='Референс шлюза')),
                ('customer_email', models.EmailField(max_length=255, verbose_name='Email плательщика')),
                ('amount', models.PositiveIntegerField(verbose_name='Сумма')),
                ('currency', models.CharField(default='NGN', max_length=3, verbose_name='Валюта')),
                ('status', models.CharField(choices=[('PENDING', 'Ожидает оплаты'), ('COMPLETED', 'Оплачен'), ('FAILED', 'Ошибка'), ('REFUNDED', 'Возвращён'), ('CANCELLED', 'Отменён')], db_index=True, default='PENDING', max_length=16, verbose_name='Статус')),
                ('platform_fee', models.PositiveIntegerField(default=0, verbose_name='Комиссия платформы')),
                ('organizer_amount', models.PositiveIntegerField(default=0, verbose_name='Организатору')),
                ('gateway_fee', models.PositiveIntegerField(default=0, verbose_name='Комиссия шлюза')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Состав заказа')),
                ('webhook_payload', models.JSONField(blank=True, null=True, verbose_name='Данные шлюза')),
                ('failure_reason', models.CharField(blank=True, max_length=255, verbose_name='Причина ошибки')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Оплачен')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлён')),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='events.event', verbose_name='Событие')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to=settings.AUTH_USER_MODEL, verbose_name='Покупатель')),
            ],
            options={
                'verbose_name': 'Платёж',
                'verbose_name_plural': 'Платежи',
                'ordering': ['-created_at'],
            },
        ),
    ]
