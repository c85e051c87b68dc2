"""Reporting endpoints: order summaries, restaurant performance and the training datasets."""
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_http_methods

from core import reports
from core.utils import BadRequest, auth_required, domain_errors, serialize_row


def _rows_response(rows):
    results = [serialize_row(r) for r in rows]
    return JsonResponse({'count': len(results), 'results': results})


def _as_of(request):
    """Optional ?as_of=<ISO datetime> anchoring the rolling windows; defaults to now."""
    raw = request.GET.get('as_of')
    if not raw:
        return None
    try:
        value = parse_datetime(raw)
    except ValueError:
        value = None
    if value is None:
        raise BadRequest('as_of must be an ISO 8601 datetime')
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


@auth_required
@require_http_methods(['GET'])
def customer_summary_report(request):
    return _rows_response(reports.customer_order_summary())


@auth_required
@require_http_methods(['GET'])
def restaurant_performance_report(request):
    return _rows_response(reports.restaurant_performance())


@auth_required
@require_http_methods(['GET'])
@domain_errors
def customer_retention_report(request):
    return _rows_response(reports.customer_retention_dataset(as_of=_as_of(request)))


@auth_required
@require_http_methods(['GET'])
@domain_errors
def delivery_performance_report(request):
    return _rows_response(reports.delivery_performance_dataset(as_of=_as_of(request)))


@auth_required
@require_http_methods(['GET'])
@domain_errors
def restaurant_kpi_report(request):
    return _rows_response(reports.restaurant_kpi_dataset(as_of=_as_of(request)))
