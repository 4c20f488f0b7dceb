"""URL configuration for healthlog project."""
from django.urls import path, include

urlpatterns = [
    path('', include('logbook.urls', namespace='logbook')),
    path('api/', include('logbook.api_urls', namespace='api')),
    path('journal/', include('journal.urls', namespace='journal')),
    path('admin/', include('databrowser.urls', namespace='databrowser')),
]
