from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("educacao", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FichaSaude",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "tipo",
                    models.CharField(
                        choices=[
                            ("ODONTOLOGICA", "Odontológica"),
                            ("PSICOLOGICA", "Psicológica"),
                            ("NUTRICIONAL", "Nutricional"),
                            ("MEDICA", "Médica"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("data", models.DateField(db_index=True, default=django.utils.timezone.localdate)),
                ("profissional", models.CharField(max_length=180, verbose_name="Nome do profissional")),
                ("observacoes", models.TextField(blank=True, default="")),
                ("detalhes", models.JSONField(blank=True, default=dict)),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                (
                    "aluno",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="fichas_saude",
                        to="educacao.aluno",
                    ),
                ),
                (
                    "registrado_por",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="fichas_saude_registradas",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Ficha de saúde",
                "verbose_name_plural": "Fichas de saúde",
                "ordering": ["-data", "-criado_em"],
                "indexes": [models.Index(fields=["tipo", "data"], name="saude_ficha_tipo_4b8e2d_idx")],
            },
        ),
    ]
