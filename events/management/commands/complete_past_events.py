import logging

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from events.models import Event

logger = logging.getLogger('events')


class Command(BaseCommand):
    help = "Переводит прошедшие ACTIVE/DRAFT мероприятия в COMPLETED. Запускать по cron."

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true',
                            help="Только посчитать, ничего не меняя")

    def handle(self, *args, **options):
        now = timezone.now()
        # окончание: ends_at, а если его нет, то начало
        ended = (Event.objects
                 .filter(status__in=(Event.Status.ACTIVE, Event.Status.DRAFT))
                 .filter(Q(ends_at__lt=now) | Q(ends_at__isnull=True, starts_at__lt=now)))

        if options['dry_run']:
            self.stdout.write(f"{ended.count()} event(s) ready to complete")
            return

        completed = ended.update(status=Event.Status.COMPLETED, updated_at=now)
        logger.info("Past events completed: %s", completed)
        self.stdout.write(self.style.SUCCESS(f"Completed {completed} event(s)"))
