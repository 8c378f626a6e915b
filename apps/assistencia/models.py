from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

NECESSIDADES = [
    "Moradia",
    "Alimentação",
    "Renda",
    "Transporte",
    "Saúde",
    "Educação",
    "Documentação",
    "Jurídico",
]

ENCAMINHAMENTOS = [
    "CRAS",
    "CREAS",
    "Bolsa Família",
    "BPC",
    "Defensoria Pública",
    "Posto de Saúde",
]


class AtendimentoSocial(models.Model):
    aluno = models.ForeignKey(
        "educacao.Aluno",
        on_delete=models.PROTECT,
        related_name="atendimentos_sociais",
    )
    data = models.DateField(default=timezone.localdate, db_index=True)
    necessidades = models.JSONField(default=list, blank=True)
    encaminhamentos = models.JSONField(default=list, blank=True)
    observacoes = models.TextField(blank=True, default="")
    registrado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="atendimentos_registrados",
    )
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Atendimento social"
        verbose_name_plural = "Atendimentos sociais"
        ordering = ["-data", "-criado_em"]

    def __str__(self) -> str:
        return f"{self.aluno} • {self.data:%d/%m/%Y}"

    @property
    def necessidades_texto(self) -> str:
        return ", ".join(self.necessidades or [])

    @property
    def encaminhamentos_texto(self) -> str:
        return ", ".join(self.encaminhamentos or [])
