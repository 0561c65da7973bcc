# backend/labelscan_project/urls.py
from django.urls import include, path

urlpatterns = [
    path("api/", include("labelscan.urls")),
]
