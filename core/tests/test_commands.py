from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from core import services
from core.models import Order, OrderItem, Restaurant

from .helpers import make_order, make_world


class PlaceOrderCommandTests(TestCase):

    def setUp(self):
        self.world = make_world()

    def run_command(self, *items, extra=()):
        out = StringIO()
        args = [
            '--customer', str(self.world.customer.pk),
            '--restaurant', str(self.world.restaurant.pk),
            '--address', str(self.world.address.pk),
        ]
        for item in items:
            args += ['--item', item]
        call_command('place_order', *args, *extra, stdout=out)
        return out.getvalue().strip()

    def test_prints_order_id(self):
        order_id = int(self.run_command('4010:2', '4011:1'))
        order = Order.objects.get(pk=order_id)
        self.assertEqual(order.total, Decimal('28.85'))
        self.assertEqual(order.payment.method, 'card')

    def test_method_option(self):
        order_id = int(self.run_command('4011:1', extra=['--method', 'cash']))
        self.assertEqual(Order.objects.get(pk=order_id).payment.method, 'cash')

    def test_unknown_item_fails(self):
        with self.assertRaisesMessage(CommandError, 'UNKNOWN_MENU_ITEM'):
            self.run_command('4010:1', '777:1')
        self.assertFalse(Order.objects.exists())

    def test_skip_unknown(self):
        order_id = int(self.run_command('4010:1', '777:1', extra=['--skip-unknown']))
        self.assertEqual(Order.objects.get(pk=order_id).items.count(), 1)

    def test_bad_item_format(self):
        with self.assertRaises(CommandError):
            self.run_command('4010x2')


class RecomputeAggregatesCommandTests(TestCase):

    def setUp(self):
        self.world = make_world()
        self.order_id = services.place_order(
            self.world.customer.pk, self.world.restaurant.pk, self.world.address.pk, [(4010, 2), (4011, 1)]
        )
        services.add_review(self.order_id, 4)

    def run_command(self, *args):
        out = StringIO()
        call_command('recompute_aggregates', *args, stdout=out)
        return out.getvalue()

    def test_nothing_to_fix(self):
        output = self.run_command()
        self.assertIn('No order aggregates to fix.', output)
        self.assertIn('No restaurant aggregates to fix.', output)

    def test_fixes_bulk_loaded_lines(self):
        order = make_order(self.world)
        OrderItem.objects.bulk_create([
            OrderItem(order=order, menu_item=self.world.item_a, quantity=2,
                      unit_price=Decimal('8.50'), line_total=Decimal('17.00')),
            OrderItem(order=order, menu_item=self.world.item_b, quantity=1,
                      unit_price=Decimal('5.00'), line_total=Decimal('5.00')),
        ])
        output = self.run_command('--orders')
        self.assertIn(f'Order #{order.pk}: 0.00/0.00/0.00 -> 22.00/2.86/28.85', output)
        self.assertIn('Fixed 1 order(s).', output)
        self.assertNotIn('restaurant', output)
        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('28.85'))

    def test_dry_run_does_not_write(self):
        Order.objects.filter(pk=self.order_id).update(subtotal=0, tax=0, total=0)
        output = self.run_command('--dry-run', '--orders')
        self.assertIn('Dry run: would fix 1 order(s).', output)
        self.assertEqual(Order.objects.get(pk=self.order_id).total, Decimal('0.00'))

        self.run_command('--orders')
        self.assertEqual(Order.objects.get(pk=self.order_id).total, Decimal('28.85'))
        self.assertIn('No order aggregates to fix.', self.run_command('--orders'))

    def test_fixes_stale_rating(self):
        Restaurant.objects.filter(pk=self.world.restaurant.pk).update(rating_avg=Decimal('1.00'))
        output = self.run_command('--ratings')
        self.assertIn(f'Restaurant #{self.world.restaurant.pk}: 1.00 -> 4.00', output)
        self.assertIn('Fixed 1 restaurant(s).', output)
        self.assertEqual(Restaurant.objects.get(pk=self.world.restaurant.pk).rating_avg, Decimal('4.00'))

    def test_orders_and_ratings_are_exclusive(self):
        with self.assertRaises(CommandError):
            self.run_command('--orders', '--ratings')
