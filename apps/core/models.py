from django.db import models


class Evento(models.Model):
    titulo = models.CharField(max_length=180)
    descricao = models.TextField(blank=True, default="")
    data = models.DateField(db_index=True)
    hora = models.TimeField(null=True, blank=True)
    local = models.CharField(max_length=180, blank=True, default="")
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Evento"
        verbose_name_plural = "Eventos"
        ordering = ["data", "hora", "titulo"]

    def __str__(self) -> str:
        return f"{self.titulo} ({self.data:%d/%m/%Y})"
