from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from .models import Aluno, Curso, Matricula

logger = logging.getLogger(__name__)


@transaction.atomic
def matricular(*, aluno: Aluno, curso: Curso, usuario=None, data_matricula=None) -> Matricula:
    """
    Matricula o aluno no curso.

    Recusa matrícula repetida (qualquer situação) e curso sem vagas.
    """
    if Matricula.objects.filter(aluno=aluno, curso=curso).exists():
        raise ValidationError("O aluno já está matriculado neste curso.")

    # trava o curso para a contagem de vagas
    curso = Curso.objects.select_for_update().get(pk=curso.pk)
    if curso.vagas and curso.vagas_ocupadas >= curso.vagas:
        raise ValidationError("Não há vagas disponíveis neste curso.")

    kwargs = {"aluno": aluno, "curso": curso}
    if data_matricula:
        kwargs["data_matricula"] = data_matricula
    matricula = Matricula.objects.create(**kwargs)

    logger.info("Matrícula %s criada: %s em %s por %s", matricula.pk, aluno, curso, usuario)
    return matricula


def trancar_matricula(*, matricula: Matricula, usuario=None) -> Matricula:
    if matricula.situacao == Matricula.Situacao.TRANCADA:
        raise ValidationError("Esta matrícula já está trancada.")

    situacao_anterior = matricula.situacao
    matricula.situacao = Matricula.Situacao.TRANCADA
    matricula.save(update_fields=["situacao"])

    logger.info(
        "Matrícula %s trancada (%s → %s) por %s",
        matricula.pk,
        situacao_anterior,
        matricula.situacao,
        usuario,
    )
    return matricula


@transaction.atomic
def excluir_curso(*, curso: Curso, usuario=None) -> None:
    """Remove as matrículas (e frequências) do curso e depois o próprio curso."""
    nome = curso.nome
    total, _ = Matricula.objects.filter(curso=curso).delete()
    curso.delete()
    logger.info("Curso %s excluído (%s registros vinculados) por %s", nome, total, usuario)
