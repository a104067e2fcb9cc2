"""Dashboard stats URL configuration."""
from django.urls import path
from marketplace.views.stats_views import admin_stats, customer_stats, rider_stats

urlpatterns = [
    path('customer/', customer_stats),
    path('rider/', rider_stats),
    path('admin/', admin_stats),
]
