from django.urls import path

from . import views_alunos, views_cursos, views_frequencia

app_name = "educacao"

urlpatterns = [
    # Alunos
    path("alunos/", views_alunos.AlunoListView.as_view(), name="aluno_list"),
    path("alunos/novo/", views_alunos.aluno_create, name="aluno_create"),
    path("alunos/<int:pk>/", views_alunos.AlunoDetailView.as_view(), name="aluno_detail"),
    path("alunos/<int:pk>/editar/", views_alunos.aluno_update, name="aluno_update"),
    path("alunos/<int:pk>/excluir/", views_alunos.AlunoDeleteView.as_view(), name="aluno_delete"),
    path("alunos/<int:pk>/matricular/", views_alunos.aluno_matricular, name="aluno_matricular"),
    path("matriculas/<int:pk>/trancar/", views_alunos.matricula_trancar, name="matricula_trancar"),

    # Cursos
    path("cursos/", views_cursos.CursoListView.as_view(), name="curso_list"),
    path("cursos/novo/", views_cursos.CursoCreateView.as_view(), name="curso_create"),
    path("cursos/<int:pk>/", views_cursos.CursoDetailView.as_view(), name="curso_detail"),
    path("cursos/<int:pk>/editar/", views_cursos.CursoUpdateView.as_view(), name="curso_update"),
    path("cursos/<int:pk>/excluir/", views_cursos.CursoDeleteView.as_view(), name="curso_delete"),
    path("cursos/<int:pk>/matricular/", views_cursos.curso_matricular, name="curso_matricular"),

    # Frequência
    path("frequencia/", views_frequencia.frequencia_view, name="frequencia"),
]
