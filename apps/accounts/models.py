from __future__ import annotations

from django.conf import settings
from django.db import models


class Profile(models.Model):
    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Administrador"
        PROFESSOR = "PROFESSOR", "Professor"
        ASSISTENTE_SOCIAL = "ASSISTENTE_SOCIAL", "Assistente Social"
        PROFISSIONAL_SAUDE = "PROFISSIONAL_SAUDE", "Profissional de Saúde"
        USUARIO = "USUARIO", "Usuário"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USUARIO)
    telefone = models.CharField(max_length=40, blank=True, default="")
    ativo = models.BooleanField(default=True)

    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Perfil"
        verbose_name_plural = "Perfis"

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"


class UserManagementAudit(models.Model):
    class Action(models.TextChoices):
        CREATE = "CREATE", "Criação"
        UPDATE = "UPDATE", "Atualização"
        ACTIVATE = "ACTIVATE", "Ativação"
        DEACTIVATE = "DEACTIVATE", "Desativação"
        DELETE = "DELETE", "Exclusão"
        RESET_PASSWORD = "RESET_PASSWORD", "Reset de senha"

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="accounts_audit_actions",
    )
    target = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="accounts_audit_targets",
    )
    target_username = models.CharField(max_length=150, blank=True, default="")
    action = models.CharField(max_length=30, choices=Action.choices)
    details = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Auditoria de usuário"
        verbose_name_plural = "Auditoria de usuários"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["action", "created_at"], name="accounts_us_action_5c1f0e_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_action_display()} • {self.target_username} • {self.created_at:%d/%m/%Y %H:%M}"
