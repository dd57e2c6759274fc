import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand

from triage.services.workflow import escalate_overdue

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Escalate routed cases whose acknowledgment deadline has passed (once, or in a loop)."

    def add_arguments(self, parser):
        parser.add_argument('--loop', action='store_true', help='Keep sweeping until interrupted.')
        parser.add_argument(
            '--interval', type=int, default=settings.ESCALATION_SWEEP_INTERVAL,
            help='Seconds between sweeps with --loop.',
        )

    def handle(self, *args, **options):
        if not options['loop']:
            self._sweep()
            return
        interval = max(1, options['interval'])
        logger.info('escalation sweeper started, interval %ss', interval)
        try:
            while True:
                try:
                    self._sweep()
                except Exception:
                    logger.exception('escalation sweep failed; retrying in %ss', interval)
                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write("Stopped.")

    def _sweep(self):
        escalated = escalate_overdue()
        self.stdout.write(self.style.SUCCESS(f"Escalated {len(escalated)} case(s): {escalated}"))
