from django.urls import path
from . import views

app_name = "databrowser"

urlpatterns = [
    path("", views.index, name="index"),
    path("login/", views.login, name="login"),
    path("logout/", views.logout, name="logout"),
    path("<str:table>/", views.table, name="table"),
    path("<str:table>/<str:row_id>/", views.row, name="row"),
]
