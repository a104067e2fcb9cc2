"""Order API URL configuration."""
from django.urls import path
from marketplace.views.order_views import (
    order_assign,
    order_cashout,
    order_detail,
    order_list_create,
    order_receipt,
    order_status_update,
)

urlpatterns = [
    path('', order_list_create),
    path('<int:pk>/', order_detail),
    path('<int:pk>/assign/', order_assign),
    path('<int:pk>/status/', order_status_update),
    path('<int:pk>/cashout/', order_cashout),
    path('<int:pk>/receipt/', order_receipt),
]
