from django.urls import path
from . import api_views

app_name = "api"

urlpatterns = [
    path("days/", api_views.days, name="days"),
    path("day/", api_views.day, name="day"),
    path("weight/save/", api_views.save_weight, name="save_weight"),
    path("weight/delete/", api_views.delete_weight, name="delete_weight"),
    path("sleep/save/", api_views.save_sleep, name="save_sleep"),
    path("sleep/delete/", api_views.delete_sleep, name="delete_sleep"),
    path("meals/add/", api_views.add_meal, name="add_meal"),
    path("meals/update/", api_views.update_meal, name="update_meal"),
    path("meals/delete/", api_views.delete_meal, name="delete_meal"),
    path("meals/assist/", api_views.assist_meal, name="assist_meal"),
    path("workouts/add/", api_views.add_workout, name="add_workout"),
    path("workouts/update/", api_views.update_workout, name="update_workout"),
    path("workouts/delete/", api_views.delete_workout, name="delete_workout"),
    path("workouts/assist/", api_views.assist_workout, name="assist_workout"),
]
