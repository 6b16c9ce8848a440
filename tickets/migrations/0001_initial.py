import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('events', '0001_initial'),
        ('payments', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('price', models.PositiveIntegerField(default=0, verbose_name='Цена, kobo')),
                ('attendee_name', models.CharField(max_length=100, verbose_name='Имя участника')),
                ('attendee_email', models.EmailField(max_length=255, verbose_name='Email участника')),
                ('attendee_phone', models.CharField(blank=True, max_length=20, verbose_name='Телефон участника')),
                ('confirmation_code', models.CharField(max_length=8, unique=True, verbose_name='Код подтверждения')),
                ('status', models.CharField(choices=[('ACTIVE', 'Действителен'), ('CANCELLED', 'Отменён'), ('USED', 'Использован'), ('REFUNDED', 'Возвращён')], db_index=True, default='ACTIVE', max_length=16, verbose_name='Статус')),
                ('used_at', models.DateTimeField(blank=True, null=True, verbose_name='Использован')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Отменён')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлён')),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to='events.event', verbose_name='Событие')),
                ('tier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to='events.tickettier', verbose_name='Тариф')),
                ('payment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tickets', to='payments.payment', verbose_name='Платёж')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tickets', to=settings.AUTH_USER_MODEL, verbose_name='Покупатель')),
            ],
            options={
                'verbose_name': 'Билет',
                'verbose_name_plural': 'Билеты',
                'ordering': ['-created_at', 'id'],
                'indexes': [models.Index(fields=['event', 'attendee_email'], name='ticket_event_email_idx')],
            },
        ),
    ]
