"""
Management command: recompute order totals and restaurant ratings from their source rows.
Run after bulk loads, which write rows without firing the mutation hooks. Safe to run multiple times.
"""
from django.core.management.base import BaseCommand, CommandError

from core import services


class Command(BaseCommand):
    help = 'Recompute order subtotal/tax/total and restaurant rating_avg where they drifted'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only print what would be updated, do not save',
        )
        parser.add_argument('--orders', action='store_true', help='Only recompute order totals')
        parser.add_argument('--ratings', action='store_true', help='Only recompute restaurant ratings')

    def handle(self, *args, **options):
        if options['orders'] and options['ratings']:
            raise CommandError('--orders and --ratings are mutually exclusive')
        do_orders = not options['ratings']
        do_ratings = not options['orders']
        dry_run = options['dry_run']

        if do_orders:
            drifted = list(services.find_order_drift())
            for order, (subtotal, tax, total) in drifted:
                self.stdout.write(
                    f'Order #{order.pk}: {order.subtotal}/{order.tax}/{order.total} -> {subtotal}/{tax}/{total}'
                )
                if not dry_run:
                    services.recompute_order_totals(order.pk)
            self._summary('order', len(drifted), dry_run)

        if do_ratings:
            drifted = list(services.find_rating_drift())
            for restaurant, expected in drifted:
                self.stdout.write(f'Restaurant #{restaurant.pk}: {restaurant.rating_avg} -> {expected}')
                if not dry_run:
                    services.recompute_restaurant_rating(restaurant.pk)
            self._summary('restaurant', len(drifted), dry_run)

    def _summary(self, label, count, dry_run):
        if count == 0:
            self.stdout.write(self.style.SUCCESS(f'No {label} aggregates to fix.'))
        elif dry_run:
            self.stdout.write(self.style.WARNING(f'Dry run: would fix {count} {label}(s).'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Fixed {count} {label}(s).'))
