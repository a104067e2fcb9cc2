"""Food review URL configuration."""
from django.urls import path
from marketplace.views.review_views import review_list_create

urlpatterns = [
    path('', review_list_create),
]
