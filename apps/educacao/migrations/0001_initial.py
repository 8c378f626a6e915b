from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Aluno",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nome", models.CharField(max_length=180)),
                ("data_nascimento", models.DateField(blank=True, null=True)),
                ("endereco", models.TextField(blank=True, default="")),
                ("cpf", models.CharField(blank=True, default="", max_length=14)),
                ("cpf_enc", models.TextField(blank=True, default="")),
                ("cpf_hash", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("cpf_last4", models.CharField(blank=True, default="", max_length=4)),
                ("nis", models.CharField(blank=True, default="", max_length=20, verbose_name="NIS")),
                ("telefone", models.CharField(blank=True, default="", max_length=40)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("ativo", models.BooleanField(default=True)),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                ("atualizado_em", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Aluno",
                "verbose_name_plural": "Alunos",
                "ordering": ["nome"],
                "indexes": [
                    models.Index(fields=["nome"], name="educacao_al_nome_8d1c2a_idx"),
                    models.Index(fields=["nis"], name="educacao_al_nis_3f0b7e_idx"),
                    models.Index(fields=["ativo"], name="educacao_al_ativo_b52e91_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Curso",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nome", models.CharField(max_length=180)),
                ("descricao", models.TextField(blank=True, default="")),
                ("carga_horaria", models.PositiveIntegerField(default=0, help_text="Em horas.")),
                ("gestor_executivo", models.CharField(blank=True, default="", max_length=180)),
                ("gestor_voluntario", models.CharField(blank=True, default="", max_length=180)),
                ("orientador_educacional", models.CharField(blank=True, default="", max_length=180)),
                (
                    "turno",
                    models.CharField(
                        choices=[("MANHA", "Manhã"), ("TARDE", "Tarde"), ("NOITE", "Noite")],
                        db_index=True,
                        default="MANHA",
                        max_length=10,
                    ),
                ),
                ("vagas", models.PositiveIntegerField(default=0, help_text="0 = sem limite de vagas.")),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                ("atualizado_em", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Curso",
                "verbose_name_plural": "Cursos",
                "ordering": ["nome"],
                "indexes": [models.Index(fields=["nome"], name="educacao_cu_nome_61a9d4_idx")],
            },
        ),
        migrations.CreateModel(
            name="Responsavel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nome", models.CharField(max_length=180)),
                ("cpf", models.CharField(blank=True, default="", max_length=14)),
                ("cpf_enc", models.TextField(blank=True, default="")),
                ("cpf_hash", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("cpf_last4", models.CharField(blank=True, default="", max_length=4)),
                ("telefone", models.CharField(blank=True, default="", max_length=40)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("principal", models.BooleanField(default=False)),
                (
                    "aluno",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="responsaveis",
                        to="educacao.aluno",
                    ),
                ),
            ],
            options={
                "verbose_name": "Responsável",
                "verbose_name_plural": "Responsáveis",
                "ordering": ["-principal", "nome"],
            },
        ),
        migrations.CreateModel(
            name="Matricula",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("data_matricula", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "situacao",
                    models.CharField(
                        choices=[("ATIVA", "Ativa"), ("TRANCADA", "Trancada"), ("CONCLUIDA", "Concluída")],
                        default="ATIVA",
                        max_length=20,
                    ),
                ),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                (
                    "aluno",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="matriculas",
                        to="educacao.aluno",
                    ),
                ),
                (
                    "curso",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="matriculas",
                        to="educacao.curso",
                    ),
                ),
            ],
            options={
                "verbose_name": "Matrícula",
                "verbose_name_plural": "Matrículas",
                "ordering": ["-criado_em", "-id"],
                "indexes": [
                    models.Index(fields=["situacao"], name="educacao_ma_situaca_0e4f6b_idx"),
                    models.Index(fields=["data_matricula"], name="educacao_ma_data_ma_9a27c3_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("aluno", "curso"), name="uniq_aluno_por_curso"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Frequencia",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("data", models.DateField(db_index=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("PRESENTE", "Presente"), ("AUSENTE", "Ausente")],
                        default="PRESENTE",
                        max_length=10,
                    ),
                ),
                ("motivo_ausencia", models.CharField(blank=True, default="", max_length=255)),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                (
                    "matricula",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="frequencias",
                        to="educacao.matricula",
                    ),
                ),
                (
                    "registrado_por",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="frequencias_registradas",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Frequência",
                "verbose_name_plural": "Frequências",
                "ordering": ["-data", "matricula__aluno__nome"],
                "constraints": [
                    models.UniqueConstraint(fields=("matricula", "data"), name="uniq_frequencia_matricula_data"),
                ],
            },
        ),
    ]
