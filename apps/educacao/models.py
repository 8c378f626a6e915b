from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.core.masks import calcular_idade
from apps.core.security import display_cpf, protect_cpf, resolve_cpf_digits


class Aluno(models.Model):
    nome = models.CharField(max_length=180)
    data_nascimento = models.DateField(null=True, blank=True)
    endereco = models.TextField(blank=True, default="")

    cpf = models.CharField(max_length=14, blank=True, default="")
    cpf_enc = models.TextField(blank=True, default="")
    cpf_hash = models.CharField(max_length=64, blank=True, default="", db_index=True)
    cpf_last4 = models.CharField(max_length=4, blank=True, default="")

    nis = models.CharField("NIS", max_length=20, blank=True, default="")
    telefone = models.CharField(max_length=40, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    ativo = models.BooleanField(default=True)

    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Aluno"
        verbose_name_plural = "Alunos"
        ordering = ["nome"]
        indexes = [
            models.Index(fields=["nome"], name="educacao_al_nome_8d1c2a_idx"),
            models.Index(fields=["nis"], name="educacao_al_nis_3f0b7e_idx"),
            models.Index(fields=["ativo"], name="educacao_al_ativo_b52e91_idx"),
        ]

    def __str__(self) -> str:
        return self.nome

    def save(self, *args, **kwargs):
        protect_cpf(self)
        super().save(*args, **kwargs)

    @property
    def cpf_digits(self) -> str:
        return resolve_cpf_digits(self.cpf, self.cpf_enc)

    @property
    def cpf_display(self) -> str:
        return display_cpf(self.cpf, self.cpf_enc)

    @property
    def idade(self) -> int | None:
        if not self.data_nascimento:
            return None
        return calcular_idade(self.data_nascimento)

    @property
    def responsavel_principal(self):
        return self.responsaveis.filter(principal=True).first()


class Responsavel(models.Model):
    aluno = models.ForeignKey(Aluno, on_delete=models.CASCADE, related_name="responsaveis")
    nome = models.CharField(max_length=180)

    cpf = models.CharField(max_length=14, blank=True, default="")
    cpf_enc = models.TextField(blank=True, default="")
    cpf_hash = models.CharField(max_length=64, blank=True, default="", db_index=True)
    cpf_last4 = models.CharField(max_length=4, blank=True, default="")

    telefone = models.CharField(max_length=40, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    principal = models.BooleanField(default=False)

    class Meta:
        verbose_name = "Responsável"
        verbose_name_plural = "Responsáveis"
        ordering = ["-principal", "nome"]

    def __str__(self) -> str:
        return f"{self.nome} ({self.aluno})"

    def save(self, *args, **kwargs):
        protect_cpf(self)
        super().save(*args, **kwargs)
        # um único responsável principal por aluno
        if self.principal:
            Responsavel.objects.filter(aluno_id=self.aluno_id, principal=True).exclude(pk=self.pk).update(
                principal=False
            )

    @property
    def cpf_display(self) -> str:
        return display_cpf(self.cpf, self.cpf_enc)


class Curso(models.Model):
    class Turno(models.TextChoices):
        MANHA = "MANHA", "Manhã"
        TARDE = "TARDE", "Tarde"
        NOITE = "NOITE", "Noite"

    nome = models.CharField(max_length=180)
    descricao = models.TextField(blank=True, default="")
    carga_horaria = models.PositiveIntegerField(default=0, help_text="Em horas.")
    gestor_executivo = models.CharField(max_length=180, blank=True, default="")
    gestor_voluntario = models.CharField(max_length=180, blank=True, default="")
    orientador_educacional = models.CharField(max_length=180, blank=True, default="")
    turno = models.CharField(max_length=10, choices=Turno.choices, default=Turno.MANHA, db_index=True)
    vagas = models.PositiveIntegerField(default=0, help_text="0 = sem limite de vagas.")

    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Curso"
        verbose_name_plural = "Cursos"
        ordering = ["nome"]
        indexes = [
            models.Index(fields=["nome"], name="educacao_cu_nome_61a9d4_idx"),
        ]

    def __str__(self) -> str:
        return self.nome

    @property
    def matriculas_ativas(self):
        return self.matriculas.filter(situacao=Matricula.Situacao.ATIVA)

    @property
    def vagas_ocupadas(self) -> int:
        return self.matriculas_ativas.count()

    @property
    def vagas_disponiveis(self) -> int | None:
        if not self.vagas:
            return None
        return max(self.vagas - self.vagas_ocupadas, 0)


class Matricula(models.Model):
    class Situacao(models.TextChoices):
        ATIVA = "ATIVA", "Ativa"
        TRANCADA = "TRANCADA", "Trancada"
        CONCLUIDA = "CONCLUIDA", "Concluída"

    aluno = models.ForeignKey(Aluno, on_delete=models.PROTECT, related_name="matriculas")
    curso = models.ForeignKey(Curso, on_delete=models.PROTECT, related_name="matriculas")
    data_matricula = models.DateField(default=timezone.localdate)
    situacao = models.CharField(max_length=20, choices=Situacao.choices, default=Situacao.ATIVA)

    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Matrícula"
        verbose_name_plural = "Matrículas"
        ordering = ["-criado_em", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["aluno", "curso"],
                name="uniq_aluno_por_curso",
            )
        ]
        indexes = [
            models.Index(fields=["situacao"], name="educacao_ma_situaca_0e4f6b_idx"),
            models.Index(fields=["data_matricula"], name="educacao_ma_data_ma_9a27c3_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.aluno} → {self.curso} ({self.get_situacao_display()})"


class Frequencia(models.Model):
    class Status(models.TextChoices):
        PRESENTE = "PRESENTE", "Presente"
        AUSENTE = "AUSENTE", "Ausente"

    matricula = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name="frequencias")
    data = models.DateField(db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PRESENTE)
    motivo_ausencia = models.CharField(max_length=255, blank=True, default="")
    registrado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="frequencias_registradas",
    )

    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Frequência"
        verbose_name_plural = "Frequências"
        ordering = ["-data", "matricula__aluno__nome"]
        constraints = [
            models.UniqueConstraint(
                fields=["matricula", "data"],
                name="uniq_frequencia_matricula_data",
            )
        ]

    def __str__(self) -> str:
        return f"{self.matricula.aluno} {self.data:%d/%m/%Y}: {self.get_status_display()}"
