from django.urls import path

from . import views

app_name = "saude"

urlpatterns = [
    path("", views.FichaListView.as_view(), name="ficha_list"),
    path("nova/", views.FichaCreateView.as_view(), name="ficha_create"),
]
