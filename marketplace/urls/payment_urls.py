"""Payment API URL configuration. Callback paths are registered with SSLCommerz."""
from django.urls import path
from marketplace.views.payment_views import (
    cancel_payment,
    create_payment_intent,
    create_ssl_payment,
    fail_payment,
    record_payment,
    success_payment,
)

urlpatterns = [
    path('', record_payment),
    path('create-ssl-payment/', create_ssl_payment),
    path('create-payment-intent/', create_payment_intent),
    path('success-payment/', success_payment),
    path('fail-payment/', fail_payment),
    path('cancel-payment/', cancel_payment),
]
