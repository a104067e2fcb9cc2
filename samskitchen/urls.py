from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def root_view(request):
    """Root URL: simple API info."""
    return JsonResponse({
        'name': "Sam's Kitchen API",
        'api': '/api/',
        'admin': '/admin/',
    })


urlpatterns = [
    path('', root_view),
    path('api/', include('marketplace.urls')),
    path('admin/', admin.site.urls),
]
