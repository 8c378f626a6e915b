from django.urls import path

from . import views

app_name = "assistencia"

urlpatterns = [
    path("", views.AtendimentoListView.as_view(), name="atendimento_list"),
    path("novo/", views.AtendimentoCreateView.as_view(), name="atendimento_create"),
]
