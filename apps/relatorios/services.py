from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from django.core.exceptions import PermissionDenied

from apps.assistencia.models import ENCAMINHAMENTOS, NECESSIDADES, AtendimentoSocial
from apps.core.aggregation import (
    GroupSummary,
    aggregate,
    aggregate_multi,
    breakdown,
    count_of,
    percentage,
    with_all_keys,
)
from apps.core.masks import calcular_idade
from apps.core.session import AuthSession
from apps.educacao.models import Aluno, Curso, Frequencia, Matricula
from apps.saude.fields import CAMPOS_CONDICAO
from apps.saude.models import FichaSaude

from .catalog import get_relatorio

logger = logging.getLogger(__name__)

TENDENCIA_DIAS = 30
FAIXAS_ETARIAS = ["0-12", "13-17", "18+"]
SEM_IDADE = "Não informada"


@dataclass
class RelatorioGerado:
    slug: str
    title: str
    description: str
    headers: list[str]
    rows: list[list[Any]]
    summary: list[tuple[str, str]] = field(default_factory=list)
    groups: list[GroupSummary] = field(default_factory=list)
    gerado_em: datetime.date | None = None


Builder = Callable[[datetime.date], RelatorioGerado]


def _group_rows(groups: list[GroupSummary]) -> list[list[Any]]:
    return [[g.key, g.count, f"{g.percentage}%"] for g in groups]


def _partial(headers, rows, summary=None, groups=None) -> dict:
    return {"headers": headers, "rows": rows, "summary": summary or [], "groups": groups or []}


def _rotular(groups: list[GroupSummary], nomes: dict[str, str]) -> list[GroupSummary]:
    """Troca as chaves (ids) pelos nomes exibidos, mantendo contagens e ordem."""
    return [replace(g, key=nomes.get(g.key, g.key)) for g in groups]


# =========================
# ALUNOS
# =========================
def _alunos_por_situacao(hoje):
    labels = dict(Matricula.Situacao.choices)
    matriculas = Matricula.objects.only("situacao")
    groups = with_all_keys(
        aggregate(matriculas, lambda m: labels.get(m.situacao, m.situacao)),
        labels.values(),
    )
    total = sum(g.count for g in groups)
    return _partial(
        ["Situação", "Matrículas", "%"],
        _group_rows(groups),
        [("Total de matrículas", str(total))],
        groups,
    )


def _alunos_por_curso(hoje):
    ativas = Matricula.objects.filter(situacao=Matricula.Situacao.ATIVA).only("curso")
    nomes = {str(pk): nome for pk, nome in Curso.objects.order_by("nome", "pk").values_list("pk", "nome")}
    groups = _rotular(with_all_keys(aggregate(ativas, lambda m: str(m.curso_id)), nomes), nomes)
    counts = [g.count for g in groups]
    summary = [
        ("Total de alunos", str(sum(counts))),
        ("Cursos", str(len(groups))),
    ]
    if counts:
        summary += [("Maior turma", str(max(counts))), ("Menor turma", str(min(counts)))]
    return _partial(["Curso", "Alunos", "%"], _group_rows(groups), summary, groups)


def faixa_etaria(idade: int | None) -> str:
    if idade is None:
        return SEM_IDADE
    if idade <= 12:
        return "0-12"
    if idade <= 17:
        return "13-17"
    return "18+"


def _distribuicao_idade(hoje):
    alunos = Aluno.objects.filter(ativo=True).only("data_nascimento")
    groups = aggregate(alunos, lambda a: faixa_etaria(calcular_idade(a.data_nascimento, hoje)))
    groups = with_all_keys(groups, FAIXAS_ETARIAS)
    total = sum(g.count for g in groups)
    return _partial(
        ["Faixa etária", "Alunos", "%"],
        _group_rows(groups),
        [("Alunos ativos", str(total)), ("Sem data de nascimento", str(count_of(groups, SEM_IDADE)))],
        groups,
    )


# =========================
# CURSOS
# =========================
def _conclusao_cursos(hoje):
    matriculas = list(Matricula.objects.select_related("curso"))
    nomes = {str(m.curso_id): m.curso.nome for m in matriculas}
    por_curso = breakdown(matriculas, lambda m: str(m.curso_id), lambda m: m.situacao)

    rows = []
    concluidas_total = 0
    for curso_id, grupos in por_curso.items():
        total = sum(g.count for g in grupos)
        concluidas = count_of(grupos, Matricula.Situacao.CONCLUIDA)
        concluidas_total += concluidas
        rows.append([nomes[curso_id], total, concluidas, f"{percentage(concluidas, total)}%"])

    groups = _rotular(
        aggregate([m for m in matriculas if m.situacao == Matricula.Situacao.CONCLUIDA], lambda m: str(m.curso_id)),
        nomes,
    )
    return _partial(
        ["Curso", "Matrículas", "Concluídas", "Taxa de conclusão"],
        rows,
        [
            ("Matrículas", str(len(matriculas))),
            ("Concluídas", str(concluidas_total)),
            ("Taxa geral", f"{percentage(concluidas_total, len(matriculas))}%"),
        ],
        groups,
    )


def _ocupacao_vagas(hoje):
    # agrupado por id: cursos homônimos têm vagas próprias
    ativas = Matricula.objects.filter(situacao=Matricula.Situacao.ATIVA).only("curso")
    groups = aggregate(ativas, lambda m: str(m.curso_id))

    rows = []
    nomes = {}
    vagas_total = ocupadas_total = 0
    for curso in Curso.objects.order_by("nome", "pk"):
        nomes[str(curso.pk)] = curso.nome
        ocupadas = count_of(groups, str(curso.pk))
        if curso.vagas:
            vagas_total += curso.vagas
            ocupadas_total += ocupadas
            rows.append([curso.nome, ocupadas, curso.vagas, f"{percentage(ocupadas, curso.vagas)}%"])
        else:
            rows.append([curso.nome, ocupadas, "sem limite", "—"])

    return _partial(
        ["Curso", "Ocupadas", "Vagas", "Ocupação"],
        rows,
        [
            ("Vagas ofertadas", str(vagas_total)),
            ("Vagas ocupadas", str(ocupadas_total)),
            ("Ocupação geral", f"{percentage(ocupadas_total, vagas_total)}%"),
        ],
        _rotular(groups, nomes),
    )


# =========================
# FREQUÊNCIA
# =========================
def _frequencia_curso(hoje):
    registros = list(Frequencia.objects.values("status", "matricula__curso_id", "matricula__curso__nome"))
    nomes = {str(r["matricula__curso_id"]): r["matricula__curso__nome"] for r in registros}
    por_curso = breakdown(registros, lambda r: str(r["matricula__curso_id"]), lambda r: r["status"])

    rows = []
    for curso_id, grupos in por_curso.items():
        presentes = count_of(grupos, Frequencia.Status.PRESENTE)
        ausentes = count_of(grupos, Frequencia.Status.AUSENTE)
        rows.append([nomes[curso_id], presentes, ausentes, f"{percentage(presentes, presentes + ausentes)}%"])

    geral = aggregate(registros, lambda r: r["status"])
    presentes_total = count_of(geral, Frequencia.Status.PRESENTE)
    return _partial(
        ["Curso", "Presenças", "Faltas", "% Presença"],
        rows,
        [
            ("Registros de chamada", str(len(registros))),
            ("Presença média", f"{percentage(presentes_total, len(registros))}%"),
        ],
        _rotular(aggregate(registros, lambda r: str(r["matricula__curso_id"])), nomes),
    )


def _faltas_aluno(hoje):
    faltas = list(
        Frequencia.objects.filter(status=Frequencia.Status.AUSENTE).values("matricula__aluno_id", "matricula__aluno__nome")
    )
    nomes = {str(r["matricula__aluno_id"]): r["matricula__aluno__nome"] for r in faltas}
    groups = _rotular(aggregate(faltas, lambda r: str(r["matricula__aluno_id"])), nomes)
    return _partial(
        ["Aluno", "Faltas", "% do total de faltas"],
        _group_rows(groups),
        [("Total de faltas", str(sum(g.count for g in groups))), ("Alunos com falta", str(len(groups)))],
        groups,
    )


def tendencia(percentuais: list[int]) -> str:
    """Compara a média da primeira metade do período com a da segunda."""
    if len(percentuais) < 2:
        return "estável"
    meio = len(percentuais) // 2
    antes = sum(percentuais[:meio]) / meio
    depois = sum(percentuais[meio:]) / (len(percentuais) - meio)
    if depois - antes > 2:
        return "crescente"
    if antes - depois > 2:
        return "decrescente"
    return "estável"


def _tendencia_frequencia(hoje):
    inicio = hoje - datetime.timedelta(days=TENDENCIA_DIAS - 1)
    registros = list(Frequencia.objects.filter(data__gte=inicio, data__lte=hoje).values("data", "status"))
    por_dia = breakdown(registros, lambda r: r["data"].isoformat(), lambda r: r["status"])

    rows = []
    percentuais = []
    for dia in sorted(por_dia):
        grupos = por_dia[dia]
        presentes = count_of(grupos, Frequencia.Status.PRESENTE)
        total = sum(g.count for g in grupos)
        pct = percentage(presentes, total)
        percentuais.append(pct)
        rows.append([datetime.date.fromisoformat(dia).strftime("%d/%m/%Y"), presentes, total, f"{pct}%"])

    presentes_total = sum(1 for r in registros if r["status"] == Frequencia.Status.PRESENTE)
    return _partial(
        ["Data", "Presentes", "Registros", "% Presença"],
        rows,
        [
            ("Período", f"{inicio:%d/%m/%Y} a {hoje:%d/%m/%Y}"),
            ("Dias com chamada", str(len(rows))),
            ("Presença média", f"{percentage(presentes_total, len(registros))}%"),
            ("Tendência", tendencia(percentuais)),
        ],
        aggregate(registros, lambda r: r["status"]),
    )


# =========================
# ASSISTÊNCIA SOCIAL
# =========================
def _atendimentos_necessidade(hoje):
    atendimentos = list(AtendimentoSocial.objects.only("necessidades"))
    groups = with_all_keys(aggregate_multi(atendimentos, lambda a: a.necessidades or []), NECESSIDADES)
    return _partial(
        ["Necessidade", "Ocorrências", "%"],
        _group_rows(groups),
        [
            ("Atendimentos", str(len(atendimentos))),
            ("Necessidades registradas", str(sum(g.count for g in groups))),
        ],
        groups,
    )


def _encaminhamentos(hoje):
    atendimentos = list(AtendimentoSocial.objects.only("encaminhamentos"))
    groups = with_all_keys(aggregate_multi(atendimentos, lambda a: a.encaminhamentos or []), ENCAMINHAMENTOS)
    return _partial(
        ["Encaminhamento", "Quantidade", "%"],
        _group_rows(groups),
        [("Total de encaminhamentos", str(sum(g.count for g in groups)))],
        groups,
    )


# =========================
# SAÚDE
# =========================
def _saude_especialidade(hoje):
    labels = dict(FichaSaude.Tipo.choices)
    fichas = FichaSaude.objects.only("tipo")
    groups = with_all_keys(aggregate(fichas, lambda f: labels.get(f.tipo, f.tipo)), labels.values())
    return _partial(
        ["Especialidade", "Fichas", "%"],
        _group_rows(groups),
        [("Total de fichas", str(sum(g.count for g in groups)))],
        groups,
    )


_SEPARADORES = re.compile(r"[,;\n]+")


def condicoes_da_ficha(ficha: FichaSaude) -> list[str]:
    campo = CAMPOS_CONDICAO.get(ficha.tipo)
    texto = str((ficha.detalhes or {}).get(campo, "") if campo else "")
    itens = [item.strip() for item in _SEPARADORES.split(texto)]
    # "asma" e "Asma" contam juntas
    return [item[:1].upper() + item[1:].lower() for item in itens if item]


def _saude_condicoes(hoje):
    fichas = list(FichaSaude.objects.only("tipo", "detalhes"))
    com_condicao = [f for f in fichas if condicoes_da_ficha(f)]
    groups = aggregate_multi(com_condicao, condicoes_da_ficha)
    return _partial(
        ["Condição", "Ocorrências", "%"],
        _group_rows(groups),
        [("Fichas analisadas", str(len(fichas))), ("Fichas com condição registrada", str(len(com_condicao)))],
        groups,
    )


def _saude_evolucao(hoje):
    fichas = list(FichaSaude.objects.only("tipo", "data"))
    por_mes = breakdown(fichas, lambda f: f.data.strftime("%Y-%m"), lambda f: f.tipo)

    tipos = FichaSaude.Tipo.values
    rows = []
    for mes in sorted(por_mes):
        grupos = por_mes[mes]
        ano, m = mes.split("-")
        rows.append([f"{m}/{ano}", sum(g.count for g in grupos)] + [count_of(grupos, t) for t in tipos])

    return _partial(
        ["Mês", "Total"] + [label for _, label in FichaSaude.Tipo.choices],
        rows,
        [("Total de fichas", str(len(fichas))), ("Meses com registro", str(len(rows)))],
        aggregate(fichas, lambda f: f.get_tipo_display()),
    )


BUILDERS: dict[str, Callable[[datetime.date], dict]] = {
    "alunos-por-situacao": _alunos_por_situacao,
    "alunos-por-curso": _alunos_por_curso,
    "distribuicao-idade": _distribuicao_idade,
    "conclusao-cursos": _conclusao_cursos,
    "ocupacao-vagas": _ocupacao_vagas,
    "frequencia-curso": _frequencia_curso,
    "faltas-aluno": _faltas_aluno,
    "tendencia-frequencia": _tendencia_frequencia,
    "atendimentos-necessidade": _atendimentos_necessidade,
    "encaminhamentos": _encaminhamentos,
    "saude-especialidade": _saude_especialidade,
    "saude-condicoes": _saude_condicoes,
    "saude-evolucao": _saude_evolucao,
}


def gerar_relatorio(slug: str, session: AuthSession, hoje: datetime.date) -> RelatorioGerado:
    """
    Gera o relatório `slug` a partir dos dados atuais.

    KeyError para relatório desconhecido; PermissionDenied se a sessão
    não pode ver relatórios.
    """
    definicao = get_relatorio(slug)
    if definicao is None or slug not in BUILDERS:
        raise KeyError(slug)
    if not session.can("reports.view"):
        raise PermissionDenied("Sem permissão para gerar relatórios.")

    partes = BUILDERS[slug](hoje)
    logger.info("Relatório %s gerado por %s", slug, session.username or "anônimo")
    return RelatorioGerado(
        slug=slug,
        title=definicao.nome,
        description=definicao.descricao,
        gerado_em=hoje,
        **partes,
    )
