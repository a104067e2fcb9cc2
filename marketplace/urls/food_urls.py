"""Food catalog URL configuration."""
from django.urls import path
from marketplace.views.food_views import food_detail, food_list_create

urlpatterns = [
    path('', food_list_create),
    path('<int:pk>/', food_detail),
]
