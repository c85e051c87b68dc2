"""
Reusable business logic for order totals, restaurant ratings and order placement.
Used by signals, views, admin actions and management commands so calculations stay consistent.
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum

from .constants import (
    DEFAULT_DELIVERY_FEE,
    DEFAULT_PAYMENT_METHOD,
    DEFAULT_TAX_RATE,
    UNKNOWN_ITEM_POLICIES,
    UNKNOWN_ITEM_REJECT,
    UNKNOWN_ITEM_SKIP,
    ZERO,
    round_money,
    to_int,
)
from .exceptions import (
    ConstraintViolationError,
    EmptyOrderError,
    FoodExpressError,
    InvalidReferenceError,
    ReferentialIntegrityError,
    UnknownMenuItemError,
)
from .models import (
    Address,
    Customer,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Restaurant,
    Review,
)

logger = logging.getLogger(__name__)


def get_tax_rate():
    return Decimal(str(getattr(settings, 'FOODEXPRESS_TAX_RATE', DEFAULT_TAX_RATE)))


def get_delivery_fee():
    return round_money(getattr(settings, 'FOODEXPRESS_DELIVERY_FEE', DEFAULT_DELIVERY_FEE))


def get_payment_method():
    return getattr(settings, 'FOODEXPRESS_PAYMENT_METHOD', DEFAULT_PAYMENT_METHOD)


def get_unknown_item_policy():
    policy = getattr(settings, 'FOODEXPRESS_UNKNOWN_ITEM_POLICY', UNKNOWN_ITEM_REJECT)
    if policy not in UNKNOWN_ITEM_POLICIES:
        raise ValueError(f'FOODEXPRESS_UNKNOWN_ITEM_POLICY must be one of {sorted(UNKNOWN_ITEM_POLICIES)}')
    return policy


def compute_totals(subtotal, delivery_fee):
    """
    Return (subtotal, tax, total) for an order.
    Each step is rounded half-up to cents: tax = round(subtotal * rate),
    total = round(subtotal + tax + delivery_fee).
    """
    subtotal = round_money(subtotal)
    tax = round_money(subtotal * get_tax_rate())
    total = round_money(subtotal + tax + round_money(delivery_fee))
    return subtotal, tax, total


# --- Order Total Maintainer ---


def recompute_order_totals(order_id):
    """
    Recompute order.subtotal/tax/total from its current line items.
    Locks the order row so concurrent line-item writes on the same order serialize.
    Returns (subtotal, tax, total).
    """
    with transaction.atomic():
        order = (
            Order.objects.select_for_update()
            .only('id', 'delivery_fee', 'subtotal', 'tax', 'total')
            .filter(pk=order_id)
            .first()
        )
        if order is None:
            raise ReferentialIntegrityError(
                f'Order #{order_id} does not exist', order_id=order_id
            )
        result = OrderItem.objects.filter(order_id=order_id).aggregate(s=Sum('line_total'))
        subtotal, tax, total = compute_totals(result.get('s') or ZERO, order.delivery_fee)
        if total < 0:
            raise ConstraintViolationError(
                f'Order #{order_id} total would be negative ({total})', order_id=order_id
            )
        Order.objects.filter(pk=order_id).update(subtotal=subtotal, tax=tax, total=total)
    logger.debug('Order #%s totals: subtotal=%s tax=%s total=%s', order_id, subtotal, tax, total)
    return subtotal, tax, total


# --- Restaurant Rating Maintainer ---


def recompute_restaurant_rating(restaurant_id):
    """Recompute restaurant.rating_avg as the rounded mean of its reviews (None when it has none)."""
    with transaction.atomic():
        exists = (
            Restaurant.objects.select_for_update()
            .filter(pk=restaurant_id)
            .values_list('pk', flat=True)
            .first()
        )
        if exists is None:
            raise ReferentialIntegrityError(
                f'Restaurant #{restaurant_id} does not exist', restaurant_id=restaurant_id
            )
        # Sum/Count keeps the mean exact; Avg on an integer column comes back as a float
        agg = Review.objects.filter(restaurant_id=restaurant_id).aggregate(s=Sum('rating'), n=Count('id'))
        if not agg['n']:
            rating_avg = None
        else:
            rating_avg = round_money(Decimal(agg['s']) / Decimal(agg['n']))
        Restaurant.objects.filter(pk=restaurant_id).update(rating_avg=rating_avg)
    logger.debug('Restaurant #%s rating_avg=%s', restaurant_id, rating_avg)
    return rating_avg


# --- Order Placement ---


def _normalize_items(items):
    """
    Turn [(item_id, qty), ...] into an ordered {item_id: qty} map.
    Repeated item ids are merged since a line is identified by (order, menu item).
    """
    merged = OrderedDict()
    for entry in items or []:
        try:
            if isinstance(entry, dict):
                item_id = entry.get('item_id')
                qty = entry.get('qty', entry.get('quantity'))
            else:
                item_id, qty = entry
            item_id = to_int(item_id)
            qty = to_int(qty)
        except (TypeError, ValueError):
            raise ConstraintViolationError(
                f'Invalid line item {entry!r}: item_id and qty must be integers'
            )
        if qty <= 0:
            raise ConstraintViolationError(
                f'Quantity must be greater than 0 (item {item_id}, got {qty})',
                item_id=item_id, quantity=qty,
            )
        merged[item_id] = merged.get(item_id, 0) + qty
    return merged


def _validate_references(customer_id, restaurant_id, address_id):
    if not Customer.objects.filter(pk=customer_id).exists():
        raise InvalidReferenceError(f'Customer #{customer_id} does not exist', customer_id=customer_id)
    if not Restaurant.objects.filter(pk=restaurant_id).exists():
        raise InvalidReferenceError(f'Restaurant #{restaurant_id} does not exist', restaurant_id=restaurant_id)
    address_owner = Address.objects.filter(pk=address_id).values_list('customer_id', flat=True).first()
    if address_owner is None:
        raise InvalidReferenceError(f'Address #{address_id} does not exist', address_id=address_id)
    if address_owner != customer_id:
        raise InvalidReferenceError(
            f'Address #{address_id} does not belong to customer #{customer_id}',
            address_id=address_id, customer_id=customer_id,
        )


def place_order(customer_id, restaurant_id, address_id, items,
                payment_method=None, delivery_fee=None, unknown_items=None):
    """
    Create an order, its line items and a pending payment in one transaction.

    items: sequence of (item_id, qty) pairs or {'item_id', 'qty'} dicts.
    payment_method: defaults to FOODEXPRESS_PAYMENT_METHOD ('card').
    delivery_fee: defaults to FOODEXPRESS_DELIVERY_FEE (3.99).
    unknown_items: 'reject' or 'skip'; defaults to FOODEXPRESS_UNKNOWN_ITEM_POLICY.

    Returns the new order id. Raises InvalidReferenceError, UnknownMenuItemError,
    EmptyOrderError or ConstraintViolationError; nothing is written in that case.
    """
    customer_id = int(customer_id)
    restaurant_id = int(restaurant_id)
    address_id = int(address_id)
    policy = unknown_items or get_unknown_item_policy()
    if policy not in UNKNOWN_ITEM_POLICIES:
        raise ValueError(f'unknown_items must be one of {sorted(UNKNOWN_ITEM_POLICIES)}')
    method = payment_method or get_payment_method()
    if method not in PaymentMethod.values:
        raise ConstraintViolationError(f'Unsupported payment method {method!r}', method=method)
    fee = round_money(delivery_fee if delivery_fee is not None else get_delivery_fee())
    if fee < 0:
        raise ConstraintViolationError(f'Delivery fee cannot be negative ({fee})')

    requested = _normalize_items(items)

    with transaction.atomic():
        _validate_references(customer_id, restaurant_id, address_id)

        menu_items = MenuItem.objects.in_bulk(list(requested.keys()))
        unknown = [item_id for item_id in requested if item_id not in menu_items]
        if unknown and policy == UNKNOWN_ITEM_REJECT:
            raise UnknownMenuItemError(unknown)
        if unknown and policy == UNKNOWN_ITEM_SKIP:
            logger.warning(
                'Skipping unknown menu item(s) %s for customer #%s at restaurant #%s',
                unknown, customer_id, restaurant_id,
            )
        lines = [(menu_items[item_id], qty) for item_id, qty in requested.items() if item_id in menu_items]
        if not lines:
            raise EmptyOrderError('Order has no valid line items', skipped_item_ids=unknown)

        order = Order.objects.create(
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            address_id=address_id,
            status=OrderStatus.PLACED,
            subtotal=ZERO,
            tax=ZERO,
            delivery_fee=fee,
            total=ZERO,
        )

        # Each save fires the totals hook (signals.on_order_item_save)
        for menu_item, qty in lines:
            OrderItem(order=order, menu_item=menu_item, quantity=qty, unit_price=menu_item.price).save()

        hooked = Order.objects.values_list('subtotal', 'tax', 'total').get(pk=order.pk)
        subtotal, tax, total = recompute_order_totals(order.pk)
        if tuple(hooked) != (subtotal, tax, total):
            raise FoodExpressError(
                f'Order #{order.pk} totals diverged: hook={tuple(hooked)} recomputed={(subtotal, tax, total)}',
                order_id=order.pk,
            )

        details = {'created_by': 'place_order'}
        if unknown:
            details['skipped_item_ids'] = unknown
        Payment.objects.create(
            order=order,
            method=method,
            amount=total,
            status=PaymentStatus.PENDING,
            details=details,
        )

    logger.info(
        'Order #%s placed: customer=%s restaurant=%s lines=%s total=%s',
        order.pk, customer_id, restaurant_id, len(lines), total,
    )
    return order.pk


# --- Generic write path helpers (views / admin) ---


def add_line_item(order_id, item_id, quantity):
    """
    Insert a line for item_id on the order, or add quantity to the existing line.
    The totals hook fires from OrderItem.save(). Returns the OrderItem.
    """
    with transaction.atomic():
        if not Order.objects.select_for_update().filter(pk=order_id).exists():
            raise InvalidReferenceError(f'Order #{order_id} does not exist', order_id=order_id)
        menu_item = MenuItem.objects.filter(pk=item_id).first()
        if menu_item is None:
            raise UnknownMenuItemError([item_id])
        try:
            quantity = to_int(quantity)
        except (TypeError, ValueError):
            raise ConstraintViolationError(f'Quantity must be an integer (got {quantity!r})', quantity=quantity)
        if quantity <= 0:
            raise ConstraintViolationError(
                f'Quantity must be greater than 0 (got {quantity})', quantity=quantity
            )
        line = OrderItem.objects.filter(order_id=order_id, menu_item_id=item_id).first()
        if line is None:
            line = OrderItem(order_id=order_id, menu_item=menu_item, quantity=quantity, unit_price=menu_item.price)
        else:
            # keep the original price snapshot
            line.quantity += quantity
        line.save()
    return line


def remove_line_item(order_id, item_id):
    """Delete the line for item_id on the order. Returns False when there was no such line."""
    with transaction.atomic():
        line = OrderItem.objects.filter(order_id=order_id, menu_item_id=item_id).first()
        if line is None:
            return False
        line.delete()
    return True


def add_review(order_id, rating, comments='', sentiment=None):
    """Insert a review for the order; customer and restaurant come from the order."""
    order = Order.objects.filter(pk=order_id).only('id', 'customer', 'restaurant').first()
    if order is None:
        raise InvalidReferenceError(f'Order #{order_id} does not exist', order_id=order_id)
    try:
        rating = to_int(rating)
    except (TypeError, ValueError):
        raise ConstraintViolationError(f'Rating must be an integer (got {rating!r})', rating=rating)
    review = Review(
        order_id=order.pk,
        customer_id=order.customer_id,
        restaurant_id=order.restaurant_id,
        rating=rating,
        comments=comments or '',
        sentiment=sentiment,
    )
    review.save()
    return review


# --- Repair ---


def find_order_drift(queryset=None):
    """
    Yield (order, expected_totals) for orders whose stored totals differ from their items.
    Rows written by bulk loaders bypass the hooks and show up here.
    """
    qs = queryset if queryset is not None else Order.objects.all()
    sums = dict(
        OrderItem.objects.filter(order__in=qs).order_by().values_list('order_id').annotate(s=Sum('line_total'))
    )
    for order in qs.only('id', 'subtotal', 'tax', 'total', 'delivery_fee').order_by('id'):
        expected = compute_totals(sums.get(order.pk) or ZERO, order.delivery_fee)
        if (order.subtotal, order.tax, order.total) != expected:
            yield order, expected


def find_rating_drift(queryset=None):
    """Yield (restaurant, expected_rating_avg) for restaurants whose rating_avg is stale."""
    qs = queryset if queryset is not None else Restaurant.objects.all()
    stats = {
        row['restaurant_id']: row
        for row in Review.objects.filter(restaurant__in=qs).order_by()
        .values('restaurant_id')
        .annotate(s=Sum('rating'), n=Count('id'))
    }
    for restaurant in qs.only('id', 'rating_avg').order_by('id'):
        row = stats.get(restaurant.pk)
        expected = round_money(Decimal(row['s']) / Decimal(row['n'])) if row else None
        if restaurant.rating_avg != expected:
            yield restaurant, expected
