from decimal import Decimal

from django.test import TestCase, override_settings

from core import services
from core.exceptions import ConstraintViolationError, InvalidReferenceError, ReferentialIntegrityError
from core.models import Restaurant, Review

from .helpers import make_order, make_restaurant, make_world


class RestaurantRatingTests(TestCase):

    def setUp(self):
        self.world = make_world()
        self.order = make_order(self.world)

    def rating(self, restaurant=None):
        return Restaurant.objects.get(pk=(restaurant or self.world.restaurant).pk).rating_avg

    def test_no_reviews_means_no_rating(self):
        self.assertIsNone(self.rating())
        self.assertIsNone(services.recompute_restaurant_rating(self.world.restaurant.pk))

    def test_first_review_sets_rating(self):
        services.add_review(self.order.pk, 4)
        self.assertEqual(self.rating(), Decimal('4.00'))

    def test_mean_rounds_half_up(self):
        for value in (5, 5, 5, 5, 5, 4, 4, 4):
            services.add_review(self.order.pk, value)
        # 37 / 8 = 4.625
        self.assertEqual(self.rating(), Decimal('4.63'))

    def test_mean_recomputed_after_each_insert(self):
        services.add_review(self.order.pk, 5)
        services.add_review(self.order.pk, 2)
        self.assertEqual(self.rating(), Decimal('3.50'))
        services.add_review(self.order.pk, 2)
        self.assertEqual(self.rating(), Decimal('3.00'))

    def test_other_restaurants_untouched(self):
        other = make_restaurant(name='Noodle Bar')
        services.add_review(self.order.pk, 3)
        self.assertIsNone(self.rating(other))

    def test_review_takes_customer_and_restaurant_from_order(self):
        review = services.add_review(self.order.pk, 5, comments='Great')
        self.assertEqual(review.customer_id, self.world.customer.pk)
        self.assertEqual(review.restaurant_id, self.world.restaurant.pk)

    def test_out_of_range_rating_rejected(self):
        for value in (0, 6):
            with self.assertRaises(ConstraintViolationError):
                services.add_review(self.order.pk, value)
        for value in ('great', 4.9, True, None):
            with self.assertRaises(ConstraintViolationError):
                services.add_review(self.order.pk, value)
        self.assertFalse(Review.objects.exists())
        self.assertIsNone(self.rating())

    def test_review_for_unknown_order(self):
        with self.assertRaises(InvalidReferenceError):
            services.add_review(424242, 4)

    def test_missing_restaurant_is_an_integrity_error(self):
        with self.assertRaises(ReferentialIntegrityError):
            services.recompute_restaurant_rating(424242)


class RatingChangePolicyTests(TestCase):

    def setUp(self):
        self.world = make_world()
        self.order = make_order(self.world)
        self.low = services.add_review(self.order.pk, 2)
        services.add_review(self.order.pk, 4)

    def rating(self):
        return Restaurant.objects.get(pk=self.world.restaurant.pk).rating_avg

    @override_settings(FOODEXPRESS_RATING_ON_CHANGE=False)
    def test_update_and_delete_ignored_by_default(self):
        self.low.rating = 5
        self.low.save()
        self.assertEqual(self.rating(), Decimal('3.00'))
        self.low.delete()
        self.assertEqual(self.rating(), Decimal('3.00'))

    @override_settings(FOODEXPRESS_RATING_ON_CHANGE=True)
    def test_update_recomputes_when_enabled(self):
        self.low.rating = 5
        self.low.save()
        self.assertEqual(self.rating(), Decimal('4.50'))

    @override_settings(FOODEXPRESS_RATING_ON_CHANGE=True)
    def test_delete_recomputes_when_enabled(self):
        self.low.delete()
        self.assertEqual(self.rating(), Decimal('4.00'))
        Review.objects.all().delete()
        self.assertIsNone(self.rating())
