from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone


class FichaSaude(models.Model):
    class Tipo(models.TextChoices):
        ODONTOLOGICA = "ODONTOLOGICA", "Odontológica"
        PSICOLOGICA = "PSICOLOGICA", "Psicológica"
        NUTRICIONAL = "NUTRICIONAL", "Nutricional"
        MEDICA = "MEDICA", "Médica"

    aluno = models.ForeignKey(
        "educacao.Aluno",
        on_delete=models.PROTECT,
        related_name="fichas_saude",
    )
    tipo = models.CharField(max_length=20, choices=Tipo.choices, db_index=True)
    data = models.DateField(default=timezone.localdate, db_index=True)
    profissional = models.CharField("Nome do profissional", max_length=180)
    observacoes = models.TextField(blank=True, default="")
    detalhes = models.JSONField(default=dict, blank=True)
    registrado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="fichas_saude_registradas",
    )
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Ficha de saúde"
        verbose_name_plural = "Fichas de saúde"
        ordering = ["-data", "-criado_em"]
        indexes = [
            models.Index(fields=["tipo", "data"], name="saude_ficha_tipo_4b8e2d_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_tipo_display()} • {self.aluno} • {self.data:%d/%m/%Y}"

    def detalhes_rotulados(self) -> list[tuple[str, str]]:
        """[(rótulo, valor)] na ordem dos campos do tipo da ficha."""
        from .fields import DETALHES_POR_TIPO

        valores = self.detalhes or {}
        return [
            (campo.label, str(valores.get(campo.key, "")))
            for campo in DETALHES_POR_TIPO.get(self.tipo, [])
            if valores.get(campo.key) not in (None, "")
        ]
