import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Payout',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.PositiveIntegerField(verbose_name='Сумма, kobo')),
                ('status', models.CharField(choices=[('PENDING', 'На рассмотрении'), ('PROCESSING', 'Перевод в обработке'), ('COMPLETED', 'Выплачено'), ('FAILED', 'Ошибка перевода'), ('CANCELLED', 'Отклонено')], db_index=True, default='PENDING', max_length=16, verbose_name='Статус')),
                ('bank_account', models.CharField(max_length=10, verbose_name='Номер счёта')),
                ('bank_code', models.CharField(max_length=20, verbose_name='Код банка')),
                ('account_name', models.CharField(max_length=255, verbose_name='Владелец счёта')),
                ('reason', models.CharField(blank=True, max_length=255, verbose_name='Комментарий')),
                ('transfer_reference', models.CharField(blank=True, max_length=100, null=True, unique=True, verbose_name='Референс перевода')),
                ('transfer_code', models.CharField(blank=True, max_length=100, verbose_name='Код перевода')),
                ('failure_reason', models.CharField(blank=True, max_length=255, verbose_name='Причина ошибки')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='Обработано')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создано')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлено')),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payouts', to=settings.AUTH_USER_MODEL, verbose_name='Организатор')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_payouts', to=settings.AUTH_USER_MODEL, verbose_name='Обработал')),
            ],
            options={
                'verbose_name': 'Вывод средств',
                'verbose_name_plural': 'Выводы средств',
                'ordering': ['-created_at'],
            },
        ),
    ]
