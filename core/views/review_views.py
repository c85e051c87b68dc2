"""Review insert and restaurant detail (rating_avg). Function-based."""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from django.shortcuts import get_object_or_404

from core import services
from core.models import Restaurant
from core.utils import BadRequest, auth_required, domain_errors, parse_json_body, require_int


def _restaurant_to_dict(r):
    return {
        'id': r.id,
        'name': r.name,
        'cuisine_type': r.cuisine_type,
        'city': r.city or '',
        'phone': r.phone or '',
        'rating_avg': str(r.rating_avg) if r.rating_avg is not None else None,
        'reviews_count': r.reviews.count(),
    }


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
@domain_errors
def review_create(request):
    """Insert a review. Required: order_id, rating (1-5). Optional: comments."""
    body = parse_json_body(request)
    order_id = require_int(body, 'order_id')
    if 'rating' not in body:
        raise BadRequest('rating required')
    comments = body.get('comments') or ''
    if not isinstance(comments, str):
        raise BadRequest('comments must be a string')
    review = services.add_review(order_id, body.get('rating'), comments=comments.strip())
    restaurant = Restaurant.objects.get(pk=review.restaurant_id)
    return JsonResponse({
        'id': review.id,
        'order_id': review.order_id,
        'customer_id': review.customer_id,
        'restaurant_id': review.restaurant_id,
        'rating': review.rating,
        'comments': review.comments,
        'created_at': review.created_at.isoformat() if review.created_at else None,
        'restaurant_rating_avg': str(restaurant.rating_avg) if restaurant.rating_avg is not None else None,
    }, status=201)


@auth_required
@require_http_methods(['GET'])
def restaurant_detail(request, pk):
    return JsonResponse(_restaurant_to_dict(get_object_or_404(Restaurant, pk=pk)))
