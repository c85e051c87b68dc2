from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from core import services
from core.models import Order, OrderItem, Restaurant

from .helpers import make_world


class AdminActionTests(TestCase):

    def setUp(self):
        self.world = make_world()
        admin_user = get_user_model().objects.create_superuser('admin', 'admin@example.com', 'admin-pass')
        self.client.force_login(admin_user)
        self.order_id = services.place_order(
            self.world.customer.pk, self.world.restaurant.pk, self.world.address.pk, [(4010, 2), (4011, 1)]
        )

    def test_recompute_totals_action(self):
        Order.objects.filter(pk=self.order_id).update(subtotal=0, tax=0, total=0)
        resp = self.client.post('/admin/core/order/', {
            'action': 'recompute_totals',
            '_selected_action': [self.order_id],
        })
        self.assertEqual(resp.status_code, 302)
        order = Order.objects.get(pk=self.order_id)
        self.assertEqual((order.subtotal, order.tax, order.total), (Decimal('22.00'), Decimal('2.86'), Decimal('28.85')))

    def test_recompute_rating_action(self):
        services.add_review(self.order_id, 5)
        Restaurant.objects.filter(pk=self.world.restaurant.pk).update(rating_avg=None)
        resp = self.client.post('/admin/core/restaurant/', {
            'action': 'recompute_rating',
            '_selected_action': [self.world.restaurant.pk],
        })
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(Restaurant.objects.get(pk=self.world.restaurant.pk).rating_avg, Decimal('5.00'))

    def test_moving_line_to_another_order(self):
        other_id = services.place_order(
            self.world.customer.pk, self.world.restaurant.pk, self.world.address.pk, [(4011, 1)]
        )
        line = OrderItem.objects.get(order_id=self.order_id, menu_item_id=4010)
        resp = self.client.post(f'/admin/core/orderitem/{line.pk}/change/', {
            'order': other_id,
            'menu_item': 4010,
            'quantity': 2,
            'unit_price': '8.50',
        })
        self.assertEqual(resp.status_code, 302)
        source = Order.objects.get(pk=self.order_id)
        target = Order.objects.get(pk=other_id)
        # 4011 x1 left behind; 4010 x2 joined 4011 x1
        self.assertEqual((source.subtotal, source.total), (Decimal('5.00'), Decimal('9.64')))
        self.assertEqual((target.subtotal, target.total), (Decimal('22.00'), Decimal('28.85')))

    def test_derived_fields_read_only(self):
        resp = self.client.get(f'/admin/core/order/{self.order_id}/change/')
        self.assertEqual(resp.status_code, 200)
        form = resp.context['adminform'].form
        for name in ('subtotal', 'tax', 'total', 'delivery_fee'):
            self.assertNotIn(name, form.fields)
