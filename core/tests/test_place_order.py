from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from core import services
from core.exceptions import (
    ConstraintViolationError,
    EmptyOrderError,
    InvalidReferenceError,
    UnknownMenuItemError,
)
from core.models import Order, OrderItem, OrderStatus, Payment, PaymentStatus

from .helpers import make_address, make_customer, make_world


class PlaceOrderTests(TestCase):

    def setUp(self):
        self.world = make_world()

    def place(self, items, **kwargs):
        return services.place_order(
            kwargs.pop('customer_id', self.world.customer.pk),
            kwargs.pop('restaurant_id', self.world.restaurant.pk),
            kwargs.pop('address_id', self.world.address.pk),
            items,
            **kwargs
        )

    def assertNothingWritten(self):
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.assertEqual(Payment.objects.count(), 0)

    def test_worked_example(self):
        order_id = self.place([(4010, 2), (4011, 1)])
        order = Order.objects.get(pk=order_id)
        self.assertEqual(order.status, OrderStatus.PLACED)
        self.assertEqual(order.delivery_fee, Decimal('3.99'))
        self.assertEqual(order.subtotal, Decimal('22.00'))
        self.assertEqual(order.tax, Decimal('2.86'))
        self.assertEqual(order.total, Decimal('28.85'))

        lines = {i.menu_item_id: i for i in order.items.all()}
        self.assertEqual(lines[4010].line_total, Decimal('17.00'))
        self.assertEqual(lines[4011].line_total, Decimal('5.00'))

        payments = Payment.objects.filter(order_id=order_id)
        self.assertEqual(payments.count(), 1)
        payment = payments.get()
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.method, 'card')
        self.assertEqual(payment.amount, Decimal('28.85'))
        self.assertEqual(payment.details, {'created_by': 'place_order'})

    def test_totals_already_converged(self):
        order_id = self.place([(4010, 2), (4011, 1)])
        order = Order.objects.get(pk=order_id)
        self.assertEqual(
            services.recompute_order_totals(order_id),
            (order.subtotal, order.tax, order.total),
        )

    def test_dict_items_and_repeated_ids(self):
        order_id = self.place([
            {'item_id': 4010, 'qty': 1},
            {'item_id': 4010, 'quantity': 1},
            {'item_id': 4011, 'qty': 1},
        ])
        order = Order.objects.get(pk=order_id)
        self.assertEqual(order.items.get(menu_item_id=4010).quantity, 2)
        self.assertEqual(order.total, Decimal('28.85'))

    def test_payment_method(self):
        order_id = self.place([(4011, 1)], payment_method='wallet')
        self.assertEqual(Payment.objects.get(order_id=order_id).method, 'wallet')

    def test_unsupported_payment_method(self):
        with self.assertRaises(ConstraintViolationError):
            self.place([(4011, 1)], payment_method='barter')
        self.assertNothingWritten()

    @override_settings(FOODEXPRESS_PAYMENT_METHOD='cash', FOODEXPRESS_DELIVERY_FEE=Decimal('5.00'))
    def test_configured_defaults(self):
        order_id = self.place([(4011, 1)])
        order = Order.objects.get(pk=order_id)
        self.assertEqual(order.delivery_fee, Decimal('5.00'))
        self.assertEqual(order.total, Decimal('10.65'))
        self.assertEqual(Payment.objects.get(order_id=order_id).method, 'cash')

    def test_explicit_delivery_fee(self):
        order_id = self.place([(4011, 1)], delivery_fee=Decimal('0'))
        self.assertEqual(Order.objects.get(pk=order_id).total, Decimal('5.65'))

    def test_negative_delivery_fee(self):
        with self.assertRaises(ConstraintViolationError):
            self.place([(4011, 1)], delivery_fee=Decimal('-1.00'))
        self.assertNothingWritten()

    def test_nonexistent_restaurant(self):
        with self.assertRaises(InvalidReferenceError):
            self.place([(4010, 2), (4011, 1)], restaurant_id=999999)
        self.assertNothingWritten()

    def test_nonexistent_customer(self):
        with self.assertRaises(InvalidReferenceError):
            self.place([(4010, 1)], customer_id=999999)
        self.assertNothingWritten()

    def test_nonexistent_address(self):
        with self.assertRaises(InvalidReferenceError):
            self.place([(4010, 1)], address_id=999999)
        self.assertNothingWritten()

    def test_address_of_another_customer(self):
        other = make_customer(email='other@example.com', full_name='Ben Li')
        foreign = make_address(other, line='1 Queen St E')
        with self.assertRaises(InvalidReferenceError):
            self.place([(4010, 1)], address_id=foreign.pk)
        self.assertNothingWritten()

    def test_unknown_item_rejected_by_default(self):
        with self.assertRaises(UnknownMenuItemError) as ctx:
            self.place([(4010, 1), (9999, 1), (9998, 2)])
        self.assertEqual(ctx.exception.item_ids, [9998, 9999])
        self.assertIsInstance(ctx.exception, InvalidReferenceError)
        self.assertNothingWritten()

    def test_unknown_item_skipped_and_reported(self):
        with self.assertLogs('core.services', level='WARNING') as logs:
            order_id = self.place([(4010, 2), (9999, 1), (4011, 1)], unknown_items='skip')
        self.assertIn('9999', logs.output[0])
        order = Order.objects.get(pk=order_id)
        self.assertEqual(sorted(order.items.values_list('menu_item_id', flat=True)), [4010, 4011])
        self.assertEqual(order.total, Decimal('28.85'))
        self.assertEqual(
            Payment.objects.get(order_id=order_id).details,
            {'created_by': 'place_order', 'skipped_item_ids': [9999]},
        )

    @override_settings(FOODEXPRESS_UNKNOWN_ITEM_POLICY='skip')
    def test_all_items_unknown_is_empty(self):
        with self.assertRaises(EmptyOrderError):
            self.place([(9999, 1)])
        self.assertNothingWritten()

    def test_empty_item_list(self):
        with self.assertRaises(EmptyOrderError):
            self.place([])
        self.assertNothingWritten()

    def test_non_positive_quantity(self):
        for qty in (0, -2):
            with self.assertRaises(ConstraintViolationError):
                self.place([(4010, 1), (4011, qty)])
        self.assertNothingWritten()

    def test_fractional_quantity_rejected(self):
        for qty in (2.7, Decimal('0.5'), True, '1.9'):
            with self.assertRaises(ConstraintViolationError):
                self.place([(4010, qty)])
        self.assertNothingWritten()

    def test_integral_float_quantity_accepted(self):
        order_id = self.place([(4010, 2.0), {'item_id': '4011', 'qty': '1'}])
        self.assertEqual(Order.objects.get(pk=order_id).total, Decimal('28.85'))

    def test_malformed_entries(self):
        for entry in ((4010,), (4010, 1, 2), 4010, None):
            with self.assertRaises(ConstraintViolationError):
                self.place([entry])
        self.assertNothingWritten()

    def test_failure_after_lines_rolls_everything_back(self):
        with mock.patch.object(Payment.objects, 'create', side_effect=RuntimeError('payment store down')):
            with self.assertRaises(RuntimeError):
                self.place([(4010, 2), (4011, 1)])
        self.assertNothingWritten()

    def test_logs_placement(self):
        with self.assertLogs('core.services', level='INFO') as logs:
            order_id = self.place([(4011, 1)])
        self.assertTrue(any(f'Order #{order_id} placed' in line for line in logs.output))
