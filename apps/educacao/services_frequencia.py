from __future__ import annotations

import datetime
import logging
from typing import Iterable

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.core.aggregation import percentage

from .models import Curso, Frequencia, Matricula

logger = logging.getLogger(__name__)


def roster(curso: Curso):
    """Matrículas ativas do curso, na ordem da chamada."""
    return (
        Matricula.objects.filter(curso=curso, situacao=Matricula.Situacao.ATIVA)
        .select_related("aluno")
        .order_by("aluno__nome")
    )


def marcacoes_do_dia(curso: Curso, data: datetime.date) -> dict[int, Frequencia]:
    qs = Frequencia.objects.filter(matricula__curso=curso, data=data)
    return {f.matricula_id: f for f in qs}


@transaction.atomic
def registrar_frequencia(
    *,
    curso: Curso | None,
    data: datetime.date | None,
    marcacoes: Iterable[tuple[int, str, str]],
    usuario=None,
) -> list[Frequencia]:
    """
    Grava a chamada do dia: `marcacoes` é uma sequência de
    (matricula_id, status, motivo_ausencia).

    Os registros do dia para as matrículas ativas do curso são
    substituídos de uma vez (tudo ou nada).
    """
    if curso is None:
        raise ValidationError("Selecione um curso.")
    if data is None:
        raise ValidationError("Informe a data da chamada.")

    marcacoes = list(marcacoes)
    if not marcacoes:
        raise ValidationError("Nenhum aluno para registrar frequência.")

    ativas = set(roster(curso).values_list("id", flat=True))
    validos = {choice for choice, _ in Frequencia.Status.choices}

    novos = []
    for matricula_id, status, motivo in marcacoes:
        if matricula_id not in ativas:
            raise ValidationError("Matrícula inválida para este curso.")
        if status not in validos:
            raise ValidationError(f"Status de frequência inválido: {status}.")
        novos.append(
            Frequencia(
                matricula_id=matricula_id,
                data=data,
                status=status,
                motivo_ausencia=(motivo or "").strip() if status == Frequencia.Status.AUSENTE else "",
                registrado_por=usuario if getattr(usuario, "is_authenticated", False) else None,
            )
        )

    Frequencia.objects.filter(matricula__curso=curso, matricula_id__in=ativas, data=data).delete()
    criados = Frequencia.objects.bulk_create(novos)

    ausentes = sum(1 for f in criados if f.status == Frequencia.Status.AUSENTE)
    logger.info(
        "Frequência de %s em %s registrada: %s alunos, %s ausências, por %s",
        curso,
        data,
        len(criados),
        ausentes,
        usuario,
    )
    return criados


def taxa_presenca(matricula: Matricula) -> int | None:
    """% de presença da matrícula (None se ainda não há chamada)."""
    registros = list(matricula.frequencias.values_list("status", flat=True))
    if not registros:
        return None
    presentes = sum(1 for s in registros if s == Frequencia.Status.PRESENTE)
    return percentage(presentes, len(registros))
