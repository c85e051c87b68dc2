from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def root_view(request):
    """Root URL: simple API info."""
    return JsonResponse({
        'name': 'FoodExpress API',
        'api': '/api/',
        'admin': '/admin/',
    })


urlpatterns = [
    path('', root_view),
    path('api/', include('core.urls')),
    path('admin/', admin.site.urls),
]
