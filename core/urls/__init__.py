# API URL configuration: orders, reviews, restaurants, reports.
from django.urls import path

from core.views.order_views import order_create, order_detail, order_item_add, order_item_delete
from core.views.review_views import review_create, restaurant_detail
from core.views.report_views import (
    customer_retention_report,
    customer_summary_report,
    delivery_performance_report,
    restaurant_kpi_report,
    restaurant_performance_report,
)

urlpatterns = [
    path('orders/', order_create),
    path('orders/<int:pk>/', order_detail),
    path('orders/<int:pk>/items/', order_item_add),
    path('orders/<int:pk>/items/<int:item_id>/', order_item_delete),
    path('reviews/', review_create),
    path('restaurants/<int:pk>/', restaurant_detail),
    path('reports/customers/', customer_summary_report),
    path('reports/restaurants/', restaurant_performance_report),
    path('reports/customer-retention/', customer_retention_report),
    path('reports/delivery-performance/', delivery_performance_report),
    path('reports/restaurant-kpi/', restaurant_kpi_report),
]
