"""
Reporting aggregates: per-customer order summary and per-restaurant performance,
plus the feature datasets (customer retention, delivery performance, restaurant KPI)
exported for model training. Rows are plain dicts with Decimal money values; views serialize them.
"""
import re
from collections import defaultdict
from datetime import datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Count, DecimalField, F, IntegerField, Max, OuterRef, Q, Subquery, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .constants import ZERO, round_money
from .models import (
    Customer,
    Delivery,
    DeliveryStatus,
    MenuItem,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    Restaurant,
    Review,
)

TRACKING_NUMBER_RE = re.compile(r'<trackingNumber>[^<]+</trackingNumber>')
RATE_PLACES = Decimal('0.0001')
RECENT_ACTIVITY_DAYS = 60
BASELINE_DAYS = 30
PEAK_HOURS = frozenset(list(range(11, 15)) + list(range(18, 22)))


def customer_order_summary(customer_ids=None):
    """
    One row per customer: total_orders, total_spent, avg_order_value, delivered_orders.
    Customers without orders get zeros and avg_order_value None.
    """
    qs = Customer.objects.all()
    if customer_ids is not None:
        qs = qs.filter(pk__in=customer_ids)
    rows = (
        qs.annotate(
            full_name=F('user__full_name'),
            total_orders=Count('orders'),
            total_spent=Sum('orders__total'),
            delivered_orders=Count('orders', filter=Q(orders__status=OrderStatus.DELIVERED)),
        )
        .values('pk', 'full_name', 'total_orders', 'total_spent', 'delivered_orders')
        .order_by('pk')
    )
    results = []
    for row in rows:
        spent = round_money(row['total_spent']) if row['total_spent'] is not None else ZERO
        count = row['total_orders']
        results.append({
            'customer_id': row['pk'],
            'full_name': row['full_name'],
            'total_orders': count,
            'total_spent': spent,
            'avg_order_value': round_money(spent / count) if count else None,
            'delivered_orders': row['delivered_orders'],
        })
    return results


def _per_restaurant(model, expression, output_field):
    """Correlated subquery aggregating one child table per restaurant (no join fan-out)."""
    return Coalesce(
        Subquery(
            model.objects.filter(restaurant=OuterRef('pk'))
            .order_by()
            .values('restaurant')
            .annotate(v=expression)
            .values('v')[:1],
            output_field=output_field,
        ),
        0,
        output_field=output_field,
    )


def restaurant_performance(restaurant_ids=None):
    """One row per restaurant: orders_count, revenue, avg_rating (None without reviews)."""
    money = DecimalField(max_digits=12, decimal_places=2)
    qs = Restaurant.objects.all()
    if restaurant_ids is not None:
        qs = qs.filter(pk__in=restaurant_ids)
    rows = (
        qs.annotate(
            orders_count=_per_restaurant(Order, Count('id'), IntegerField()),
            revenue=_per_restaurant(Order, Sum('total'), money),
            rating_sum=_per_restaurant(Review, Sum('rating'), IntegerField()),
            rating_count=_per_restaurant(Review, Count('id'), IntegerField()),
        )
        .values('pk', 'name', 'orders_count', 'revenue', 'rating_sum', 'rating_count')
        .order_by('pk')
    )
    results = []
    for row in rows:
        avg_rating = None
        if row['rating_count']:
            avg_rating = round_money(Decimal(row['rating_sum']) / Decimal(row['rating_count']))
        results.append({
            'restaurant_id': row['pk'],
            'restaurant_name': row['name'],
            'orders_count': row['orders_count'],
            'revenue': round_money(row['revenue']),
            'avg_rating': avg_rating,
        })
    return results


# --- feature datasets ---

def _ratio(numerator, denominator):
    """numerator / denominator to four places; 0 when there is nothing to divide by."""
    if not denominator:
        return Decimal('0.0000')
    return (Decimal(numerator) / Decimal(denominator)).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def _mean(values):
    values = [v for v in values if v is not None]
    if not values:
        return ZERO
    return round_money(Decimal(sum(values)) / len(values))


def _minutes_between(start, end):
    if start is None or end is None:
        return None
    # whole minutes, truncated toward zero
    return int((end - start).total_seconds() / 60)


def _has_tracking(label_xml):
    return bool(label_xml and TRACKING_NUMBER_RE.search(label_xml))


def _grouped(queryset, key, **aggregates):
    return {row[key]: row for row in queryset.order_by().values(key).annotate(**aggregates)}


def _window_start(as_of, days):
    """Local midnight `days` days before as_of."""
    day = timezone.localdate(as_of) - timedelta(days=days)
    return timezone.make_aware(datetime.combine(day, time.min))


def retention_category(total_orders):
    if total_orders == 0:
        return 'Inactive'
    if total_orders < 5:
        return 'Low_Activity'
    if total_orders < 15:
        return 'Medium_Activity'
    return 'High_Activity'


def customer_retention_dataset(as_of=None, customer_ids=None):
    """
    One feature row per customer for retention models.

    Profile: days_as_customer, likes_spicy and favorite_cuisines_count (from preferences,
    None when the key is absent). Behaviour: total/delivered/cancelled orders, total_spent,
    avg_feedback_rating (None without reviews). Payment-method shares and tracking_share
    are fractions to four places. retention_category buckets total_orders;
    is_active_recent_60d is True when the last order is at most 60 days before as_of.
    """
    as_of = as_of or timezone.now()
    today = timezone.localdate(as_of)

    customers = Customer.objects.select_related('user').order_by('pk')
    orders = Order.objects.all()
    reviews = Review.objects.all()
    payments = Payment.objects.all()
    deliveries = Delivery.objects.all()
    if customer_ids is not None:
        customers = customers.filter(pk__in=customer_ids)
        orders = orders.filter(customer_id__in=customer_ids)
        reviews = reviews.filter(customer_id__in=customer_ids)
        payments = payments.filter(order__customer_id__in=customer_ids)
        deliveries = deliveries.filter(order__customer_id__in=customer_ids)

    order_stats = _grouped(
        orders,
        'customer_id',
        total_orders=Count('id'),
        total_spent=Sum('total'),
        delivered_orders=Count('id', filter=Q(status=OrderStatus.DELIVERED)),
        cancelled_orders=Count('id', filter=Q(status=OrderStatus.CANCELLED)),
        last_order_time=Max('order_time'),
    )
    feedback = _grouped(reviews, 'customer_id', rating_sum=Sum('rating'), rating_count=Count('id'))
    method_counts = {
        f'{method}_count': Count('id', filter=Q(method=method)) for method in PaymentMethod.values
    }
    payment_mix = _grouped(payments, 'order__customer_id', payment_count=Count('id'), **method_counts)

    tracking = defaultdict(list)
    for customer_id, label_xml in deliveries.values_list('order__customer_id', 'shipping_label_xml'):
        tracking[customer_id].append(_has_tracking(label_xml))

    results = []
    for customer in customers:
        stats = order_stats.get(customer.pk, {})
        total_orders = stats.get('total_orders', 0)
        prefs = customer.preferences if isinstance(customer.preferences, dict) else {}
        spicy = prefs.get('spicy')
        cuisines = prefs.get('favorite_cuisines')

        avg_feedback = None
        if customer.pk in feedback:
            fb = feedback[customer.pk]
            avg_feedback = round_money(Decimal(fb['rating_sum']) / fb['rating_count'])

        last_order = stats.get('last_order_time')
        recent = (
            last_order is not None
            and (today - timezone.localtime(last_order).date()).days <= RECENT_ACTIVITY_DAYS
        )

        row = {
            'customer_id': customer.pk,
            'days_as_customer': (today - timezone.localtime(customer.user.created_at).date()).days,
            'likes_spicy': None if spicy is None else int(bool(spicy)),
            'favorite_cuisines_count': len(cuisines) if isinstance(cuisines, (list, dict)) else None,
            'total_orders': total_orders,
            'delivered_orders': stats.get('delivered_orders', 0),
            'cancelled_orders': stats.get('cancelled_orders', 0),
            'avg_feedback_rating': avg_feedback,
            'total_spent': round_money(stats.get('total_spent')),
        }
        mix = payment_mix.get(customer.pk, {})
        for method in PaymentMethod.values:
            row[f'pm_{method}_share'] = _ratio(mix.get(f'{method}_count', 0), mix.get('payment_count', 0))
        flags = tracking.get(customer.pk, [])
        row['tracking_share'] = _ratio(sum(flags), len(flags))
        row['retention_category'] = retention_category(total_orders)
        row['is_active_recent_60d'] = recent
        results.append(row)
    return results


def _delivery_baselines(since):
    """30-day minutes/failure samples keyed by restaurant and by courier, over every delivery."""
    by_restaurant = defaultdict(lambda: ([], []))
    by_courier = defaultdict(lambda: ([], []))
    window = Delivery.objects.filter(order__order_time__gte=since).values_list(
        'order__restaurant_id', 'courier_id', 'pickup_time', 'dropoff_time', 'status'
    )
    for restaurant_id, courier_id, pickup, dropoff, status in window:
        minutes = _minutes_between(pickup, dropoff)
        failed = status == DeliveryStatus.FAILED
        for minutes_list, failures in (by_restaurant[restaurant_id], by_courier[courier_id]):
            minutes_list.append(minutes)
            failures.append(failed)
    return by_restaurant, by_courier


def _baseline(samples):
    minutes, failures = samples
    return _mean(minutes), _ratio(sum(failures), len(failures))


def delivery_performance_dataset(as_of=None, restaurant_ids=None):
    """
    One feature row per delivery: minutes_to_deliver and failed_flag as targets, order-time
    features (hour, day of week with Sunday=1, weekend and peak flags), prep_minutes,
    vehicle_type, has_tracking, and 30-day restaurant/courier baselines (0 without data).
    """
    as_of = as_of or timezone.now()
    by_restaurant, by_courier = _delivery_baselines(_window_start(as_of, BASELINE_DAYS))
    empty = ([], [])

    deliveries = Delivery.objects.select_related('order__restaurant', 'courier').order_by('pk')
    if restaurant_ids is not None:
        deliveries = deliveries.filter(order__restaurant_id__in=restaurant_ids)

    results = []
    for delivery in deliveries:
        order = delivery.order
        ordered_at = timezone.localtime(order.order_time)
        dow = ordered_at.isoweekday() % 7 + 1
        rest_minutes, rest_fail = _baseline(by_restaurant.get(order.restaurant_id, empty))
        courier_minutes, courier_fail = _baseline(by_courier.get(delivery.courier_id, empty))
        results.append({
            'delivery_id': delivery.pk,
            'order_id': order.pk,
            'restaurant_id': order.restaurant_id,
            'restaurant_name': order.restaurant.name,
            'courier_id': delivery.courier_id,
            'minutes_to_deliver': _minutes_between(delivery.pickup_time, delivery.dropoff_time),
            'failed_flag': delivery.status == DeliveryStatus.FAILED,
            'order_hour': ordered_at.hour,
            'order_dow': dow,
            'is_weekend': dow in (1, 7),
            'is_peak': ordered_at.hour in PEAK_HOURS,
            'prep_minutes': _minutes_between(order.order_time, delivery.pickup_time),
            'vehicle_type': delivery.courier.vehicle_type,
            'has_tracking': _has_tracking(delivery.shipping_label_xml),
            'rest_avg_minutes_30d': rest_minutes,
            'rest_fail_rate_30d': rest_fail,
            'courier_avg_minutes_30d': courier_minutes,
            'courier_fail_rate_30d': courier_fail,
        })
    return results


def restaurant_kpi_dataset(as_of=None, restaurant_ids=None):
    """
    One KPI row per restaurant: commercial (orders, revenue, avg_order_value, unique customers),
    loyalty (repeat customers, reorder_rate), quality (avg_rating, 0 without reviews; review_count),
    operations (avg_delivery_minutes, fail_rate), menu size and the last 30 days of orders/revenue.
    """
    as_of = as_of or timezone.now()
    since = _window_start(as_of, BASELINE_DAYS)

    restaurants = Restaurant.objects.order_by('pk')
    orders = Order.objects.all()
    if restaurant_ids is not None:
        restaurants = restaurants.filter(pk__in=restaurant_ids)
        orders = orders.filter(restaurant_id__in=restaurant_ids)

    order_stats = _grouped(
        orders,
        'restaurant_id',
        orders_count=Count('id'),
        revenue=Sum('total'),
        unique_customers=Count('customer', distinct=True),
    )
    recent = _grouped(
        orders.filter(order_time__gte=since), 'restaurant_id', orders_30=Count('id'), revenue_30=Sum('total')
    )
    repeat_customers = defaultdict(int)
    per_customer = orders.order_by().values('restaurant_id', 'customer_id').annotate(n=Count('id'))
    for row in per_customer.filter(n__gte=2):
        repeat_customers[row['restaurant_id']] += 1
    review_stats = _grouped(Review.objects.all(), 'restaurant_id', rating_sum=Sum('rating'), review_count=Count('id'))
    menu_sizes = _grouped(MenuItem.objects.all(), 'menu__restaurant_id', n=Count('id', distinct=True))

    delivery_samples = defaultdict(lambda: ([], []))
    for restaurant_id, pickup, dropoff, status in Delivery.objects.values_list(
        'order__restaurant_id', 'pickup_time', 'dropoff_time', 'status'
    ):
        minutes, failures = delivery_samples[restaurant_id]
        minutes.append(_minutes_between(pickup, dropoff))
        failures.append(status == DeliveryStatus.FAILED)

    results = []
    for restaurant in restaurants:
        stats = order_stats.get(restaurant.pk, {})
        count = stats.get('orders_count', 0)
        revenue = round_money(stats.get('revenue'))
        unique = stats.get('unique_customers', 0)
        repeat = repeat_customers.get(restaurant.pk, 0)
        reviews = review_stats.get(restaurant.pk)
        avg_minutes, fail_rate = _baseline(delivery_samples.get(restaurant.pk, ([], [])))
        last_30 = recent.get(restaurant.pk, {})
        results.append({
            'restaurant_id': restaurant.pk,
            'restaurant_name': restaurant.name,
            'orders_count': count,
            'revenue': revenue,
            'avg_order_value': round_money(revenue / count) if count else None,
            'unique_customers': unique,
            'repeat_customers': repeat,
            'reorder_rate': _ratio(repeat, unique),
            'avg_rating': (
                round_money(Decimal(reviews['rating_sum']) / reviews['review_count']) if reviews else ZERO
            ),
            'review_count': reviews['review_count'] if reviews else 0,
            'avg_delivery_minutes': avg_minutes,
            'fail_rate': fail_rate,
            'menu_items_count': menu_sizes.get(restaurant.pk, {}).get('n', 0),
            'orders_30': last_30.get('orders_30', 0),
            'revenue_30': round_money(last_30.get('revenue_30')),
        })
    return results
