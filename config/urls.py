from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include(("apps.accounts.urls", "accounts"), namespace="accounts")),
    path("educacao/", include(("apps.educacao.urls", "educacao"), namespace="educacao")),
    path("assistencia/", include(("apps.assistencia.urls", "assistencia"), namespace="assistencia")),
    path("saude/", include(("apps.saude.urls", "saude"), namespace="saude")),
    path("relatorios/", include(("apps.relatorios.urls", "relatorios"), namespace="relatorios")),

    # raiz
    path("", include(("apps.core.urls", "core"), namespace="core")),
]
