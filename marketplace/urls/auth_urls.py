"""Auth API URL configuration."""
from django.urls import path
from marketplace.views.auth_views import login, logout, me, register

urlpatterns = [
    path('login/', login),
    path('logout/', logout),
    path('register/', register),
    path('me/', me),
]
