"""
Mutation hooks: keep derived aggregates in sync with the rows they are computed from.

OrderItem insert/update/delete -> order subtotal/tax/total (both orders when a line moves).
Review insert -> restaurant rating_avg (update/delete too when FOODEXPRESS_RATING_ON_CHANGE).

Receivers run synchronously inside the transaction of the write that fired them,
so a failing recomputation rolls the write back.
"""
from django.conf import settings
from django.db.models import QuerySet
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .models import Order, OrderItem, Review
from . import services


def _deleting_order(origin):
    """True when the delete started from the Order itself (items go with it by cascade)."""
    if isinstance(origin, Order):
        return True
    return isinstance(origin, QuerySet) and origin.model is Order


@receiver(pre_save, sender=OrderItem)
def _store_previous_order(sender, instance, raw=False, **kwargs):
    instance._previous_order_id = None
    if instance.pk and not raw:
        instance._previous_order_id = (
            OrderItem.objects.filter(pk=instance.pk).values_list('order_id', flat=True).first()
        )


@receiver(post_save, sender=OrderItem)
def on_order_item_save(sender, instance, created, raw=False, **kwargs):
    """Recompute order totals when an item is added or changed, and for the order it left when moved."""
    if raw:
        # fixture loading; run recompute_aggregates afterwards
        return
    services.recompute_order_totals(instance.order_id)
    previous = getattr(instance, '_previous_order_id', None)
    if previous is not None and previous != instance.order_id:
        services.recompute_order_totals(previous)


@receiver(post_delete, sender=OrderItem)
def on_order_item_delete(sender, instance, origin=None, **kwargs):
    """Recompute order totals when an item is removed."""
    if _deleting_order(origin):
        return
    services.recompute_order_totals(instance.order_id)


@receiver(post_save, sender=Review)
def on_review_save(sender, instance, created, raw=False, **kwargs):
    """Refresh restaurant.rating_avg on a new review."""
    if raw:
        return
    if created or getattr(settings, 'FOODEXPRESS_RATING_ON_CHANGE', False):
        services.recompute_restaurant_rating(instance.restaurant_id)


@receiver(post_delete, sender=Review)
def on_review_delete(sender, instance, origin=None, **kwargs):
    """Ratings are append-only unless FOODEXPRESS_RATING_ON_CHANGE is set."""
    if not getattr(settings, 'FOODEXPRESS_RATING_ON_CHANGE', False):
        return
    services.recompute_restaurant_rating(instance.restaurant_id)
