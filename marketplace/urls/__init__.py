# URL packages - one module per API area.
from django.urls import path, include

urlpatterns = [
    path('auth/', include('marketplace.urls.auth_urls')),
    path('orders/', include('marketplace.urls.order_urls')),
    path('payments/', include('marketplace.urls.payment_urls')),
    path('riders/', include('marketplace.urls.rider_urls')),
    path('notifications/', include('marketplace.urls.notification_urls')),
    path('foods/', include('marketplace.urls.food_urls')),
    path('reviews/', include('marketplace.urls.review_urls')),
    path('stats/', include('marketplace.urls.stats_urls')),
]
