"""
Management command: recompute each active rider's work_status from the orders
assigned to it (in_delivery iff one is assigned or picked). Safe to run repeatedly.
"""
from django.core.management.base import BaseCommand

from marketplace.models import Rider, RiderStatus
from marketplace.services import expected_work_status, reconcile_rider_work_status


class Command(BaseCommand):
    help = 'Set rider work_status from their active order assignments'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only print riders that would change, do not save',
        )

    def handle(self, *args, **options):
        changed = 0
        for rider in Rider.objects.filter(status=RiderStatus.ACTIVE).order_by('id'):
            target = expected_work_status(rider)
            if rider.work_status == target:
                continue
            changed += 1
            if options['dry_run']:
                self.stdout.write(f'Would set rider id={rider.id} {rider.email}: {rider.work_status} -> {target}')
            else:
                reconcile_rider_work_status(rider)
        if changed == 0:
            self.stdout.write(self.style.SUCCESS('All rider work statuses match their orders.'))
        elif options['dry_run']:
            self.stdout.write(self.style.WARNING(f'Dry run: {changed} rider(s) would change.'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Reconciled {changed} rider(s).'))
