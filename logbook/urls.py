from django.urls import path
from . import views

app_name = "logbook"

urlpatterns = [
    path("", views.home, name="home"),
    path("day/", views.day_summary, name="day_summary"),
    path("weight/", views.weight, name="weight"),
    path("weight/delete/", views.weight_delete, name="weight_delete"),
    path("sleep/", views.sleep, name="sleep"),
    path("sleep/delete/", views.sleep_delete, name="sleep_delete"),
    path("eat/", views.eat, name="eat"),
    path("eat/<str:record_id>/edit/", views.entry_edit, {"kind": "meal"}, name="meal_edit"),
    path("eat/<str:record_id>/delete/", views.entry_delete, {"kind": "meal"}, name="meal_delete"),
    path("workout/", views.workout, name="workout"),
    path("workout/<str:record_id>/edit/", views.entry_edit, {"kind": "workout"}, name="workout_edit"),
    path("workout/<str:record_id>/delete/", views.entry_delete, {"kind": "workout"}, name="workout_delete"),
    path("workouts/", views.workout_list, name="workout_list"),
]
