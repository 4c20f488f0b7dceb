from django.urls import path
from . import views

app_name = "journal"

urlpatterns = [
    path("", views.entry_list, name="list"),
    path("<str:entry_id>/", views.entry_detail, name="detail"),
    path("<str:entry_id>/edit/", views.entry_edit, name="edit"),
    path("<str:entry_id>/delete/", views.entry_delete, name="delete"),
]
