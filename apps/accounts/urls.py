from django.urls import path

from . import views
from . import views_users

app_name = "accounts"

urlpatterns = [
    path("login/", views.login_view, name="login"),
    path("logout/", views.logout_view, name="logout"),
    path("cadastro/", views.register_view, name="register"),
    path("meu-perfil/", views.meu_perfil, name="meu_perfil"),

    # gestão de usuários (somente administradores)
    path("usuarios/", views_users.UsuarioListView.as_view(), name="usuarios_list"),
    path("usuarios/novo/", views_users.usuario_create, name="usuario_create"),
    path("usuarios/<int:pk>/editar/", views_users.usuario_update, name="usuario_update"),
    path("usuarios/<int:pk>/excluir/", views_users.UsuarioDeleteView.as_view(), name="usuario_delete"),
]
