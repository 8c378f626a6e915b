from django.urls import path

from . import views_dashboard

app_name = "core"

urlpatterns = [
    path("", views_dashboard.dashboard, name="dashboard"),
    path("eventos/novo/", views_dashboard.EventoCreateView.as_view(), name="evento_create"),
    path("eventos/<int:pk>/editar/", views_dashboard.EventoUpdateView.as_view(), name="evento_update"),
    path("eventos/<int:pk>/excluir/", views_dashboard.EventoDeleteView.as_view(), name="evento_delete"),
]
