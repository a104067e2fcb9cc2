"""Rider API URL configuration."""
from django.urls import path
from marketplace.views.rider_views import (
    rider_apply,
    rider_available_list,
    rider_completed_orders,
    rider_delete,
    rider_orders,
    rider_pending_list,
    rider_status_update,
)

urlpatterns = [
    path('', rider_apply),
    path('available/', rider_available_list),
    path('pending/', rider_pending_list),
    path('orders/', rider_orders),
    path('completed-orders/', rider_completed_orders),
    path('<int:pk>/status/', rider_status_update),
    path('<int:pk>/', rider_delete),
]
