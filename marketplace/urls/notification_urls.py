"""Notification API URL configuration."""
from django.urls import path
from marketplace.views.notification_views import notification_list, notification_read_all

urlpatterns = [
    path('', notification_list),
    path('read-all/', notification_read_all),
]
