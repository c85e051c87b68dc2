"""Order placement, detail and line-item add/remove. Function-based."""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from django.shortcuts import get_object_or_404

from core import services
from core.models import Order
from core.utils import BadRequest, auth_required, domain_errors, parse_json_body, require_int


def _order_to_dict(o, include_items=True):
    d = {
        'id': o.id,
        'customer_id': o.customer_id,
        'restaurant_id': o.restaurant_id,
        'restaurant_name': o.restaurant.name if getattr(o, 'restaurant', None) else None,
        'address_id': o.address_id,
        'order_time': o.order_time.isoformat() if o.order_time else None,
        'status': o.status,
        'subtotal': str(o.subtotal),
        'tax': str(o.tax),
        'delivery_fee': str(o.delivery_fee),
        'total': str(o.total),
        'special_instructions': o.special_instructions or '',
    }
    payment = getattr(o, 'payment', None)
    d['payment'] = {
        'id': payment.id,
        'method': payment.method,
        'amount': str(payment.amount),
        'status': payment.status,
    } if payment else None
    if include_items:
        d['items'] = [
            {
                'item_id': i.menu_item_id,
                'name': i.menu_item.name,
                'quantity': i.quantity,
                'unit_price': str(i.unit_price),
                'line_total': str(i.line_total),
            }
            for i in o.items.select_related('menu_item').all()
        ]
    return d


def _load_order(pk):
    return get_object_or_404(Order.objects.select_related('restaurant'), pk=pk)


def _qty(entry):
    if 'qty' not in entry and 'quantity' in entry:
        return require_int(entry, 'quantity')
    return require_int(entry, 'qty')


def _parse_items(body):
    items = body.get('items')
    if not isinstance(items, list):
        raise BadRequest('items must be a list of {item_id, qty}')
    parsed = []
    for entry in items:
        if not isinstance(entry, dict):
            raise BadRequest('items must be a list of {item_id, qty}')
        parsed.append((require_int(entry, 'item_id'), _qty(entry)))
    return parsed


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
@domain_errors
def order_create(request):
    """Place an order. Required: customer_id, restaurant_id, address_id, items. Optional: payment_method."""
    body = parse_json_body(request)
    payment_method = body.get('payment_method')
    if payment_method is not None and not isinstance(payment_method, str):
        raise BadRequest('payment_method must be a string')
    order_id = services.place_order(
        require_int(body, 'customer_id'),
        require_int(body, 'restaurant_id'),
        require_int(body, 'address_id'),
        _parse_items(body),
        payment_method=(payment_method or '').strip() or None,
    )
    return JsonResponse(_order_to_dict(_load_order(order_id)), status=201)


@auth_required
@require_http_methods(['GET'])
def order_detail(request, pk):
    return JsonResponse(_order_to_dict(_load_order(pk)))


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
@domain_errors
def order_item_add(request, pk):
    """Add {item_id, qty} to the order; quantity adds up when the item is already on it."""
    order = _load_order(pk)
    body = parse_json_body(request)
    services.add_line_item(order.pk, require_int(body, 'item_id'), _qty(body))
    return JsonResponse(_order_to_dict(_load_order(order.pk)))


@csrf_exempt
@auth_required
@require_http_methods(['DELETE'])
@domain_errors
def order_item_delete(request, pk, item_id):
    order = _load_order(pk)
    if not services.remove_line_item(order.pk, item_id):
        return JsonResponse({'error': 'Not found', 'detail': f'Item {item_id} is not on order #{order.pk}'}, status=404)
    return JsonResponse(_order_to_dict(_load_order(order.pk)))
