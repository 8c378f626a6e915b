from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Evento",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("titulo", models.CharField(max_length=180)),
                ("descricao", models.TextField(blank=True, default="")),
                ("data", models.DateField(db_index=True)),
                ("hora", models.TimeField(blank=True, null=True)),
                ("local", models.CharField(blank=True, default="", max_length=180)),
                ("criado_em", models.DateTimeField(auto_now_add=True)),
                ("atualizado_em", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Evento",
                "verbose_name_plural": "Eventos",
                "ordering": ["data", "hora", "titulo"],
            },
        ),
    ]
