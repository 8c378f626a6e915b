from __future__ import annotations

import unicodedata
from dataclasses import dataclass

from django.http import Http404

CATEGORIAS = [
    ("alunos", "Alunos"),
    ("cursos", "Cursos"),
    ("frequencia", "Frequência"),
    ("assistencia", "Assistência Social"),
    ("saude", "Saúde"),
]


@dataclass(frozen=True)
class RelatorioDef:
    slug: str
    nome: str
    descricao: str
    categoria: str
    icon: str = "fa-solid fa-chart-column"

    @property
    def categoria_label(self) -> str:
        return dict(CATEGORIAS).get(self.categoria, self.categoria)


RELATORIOS: list[RelatorioDef] = [
    RelatorioDef(
        "alunos-por-situacao",
        "Alunos por Situação",
        "Distribuição das matrículas por situação (ativa, trancada, concluída)",
        "alunos",
        "fa-solid fa-chart-pie",
    ),
    RelatorioDef(
        "alunos-por-curso",
        "Alunos por Curso",
        "Quantidade de alunos com matrícula ativa em cada curso",
        "alunos",
    ),
    RelatorioDef(
        "distribuicao-idade",
        "Distribuição por Idade",
        "Distribuição dos alunos ativos por faixa etária",
        "alunos",
    ),
    RelatorioDef(
        "conclusao-cursos",
        "Taxa de Conclusão",
        "Percentual de alunos que concluíram cada curso",
        "cursos",
        "fa-solid fa-chart-pie",
    ),
    RelatorioDef(
        "ocupacao-vagas",
        "Ocupação de Vagas",
        "Percentual de vagas ocupadas em cada curso",
        "cursos",
    ),
    RelatorioDef(
        "frequencia-curso",
        "Frequência por Curso",
        "Taxa de presença dos alunos em cada curso",
        "frequencia",
        "fa-solid fa-chart-line",
    ),
    RelatorioDef(
        "faltas-aluno",
        "Faltas por Aluno",
        "Quantidade de faltas registradas por aluno",
        "frequencia",
    ),
    RelatorioDef(
        "tendencia-frequencia",
        "Tendência de Frequência",
        "Evolução diária da taxa de presença nos últimos 30 dias",
        "frequencia",
        "fa-solid fa-chart-line",
    ),
    RelatorioDef(
        "atendimentos-necessidade",
        "Necessidades Identificadas",
        "Distribuição das necessidades identificadas nos atendimentos sociais",
        "assistencia",
        "fa-solid fa-chart-pie",
    ),
    RelatorioDef(
        "encaminhamentos",
        "Encaminhamentos Realizados",
        "Quantidade de encaminhamentos realizados por tipo",
        "assistencia",
    ),
    RelatorioDef(
        "saude-especialidade",
        "Atendimentos por Especialidade",
        "Distribuição das fichas de saúde por especialidade",
        "saude",
        "fa-solid fa-chart-pie",
    ),
    RelatorioDef(
        "saude-condicoes",
        "Condições Identificadas",
        "Principais condições de saúde registradas nas fichas",
        "saude",
    ),
    RelatorioDef(
        "saude-evolucao",
        "Evolução de Atendimentos",
        "Quantidade de fichas de saúde por mês, por especialidade",
        "saude",
        "fa-solid fa-chart-line",
    ),
]

_POR_SLUG = {r.slug: r for r in RELATORIOS}


def _normalize(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in text if not unicodedata.combining(ch)).lower()


def get_relatorio(slug: str) -> RelatorioDef | None:
    return _POR_SLUG.get(slug)


def get_relatorio_or_404(slug: str) -> RelatorioDef:
    relatorio = get_relatorio(slug)
    if relatorio is None:
        raise Http404("Relatório não encontrado.")
    return relatorio


def buscar_relatorios(q: str = "", categoria: str = "") -> list[tuple[str, str, list[RelatorioDef]]]:
    """
    Catálogo agrupado por categoria: [(slug_categoria, rótulo, [relatórios])].
    `q` procura no nome e na descrição (sem acento, sem caixa).
    Categorias sem resultado ficam de fora.
    """
    termo = _normalize(q.strip())
    grupos = []
    for cat_slug, cat_label in CATEGORIAS:
        if categoria and categoria != cat_slug:
            continue
        itens = [
            r
            for r in RELATORIOS
            if r.categoria == cat_slug and (not termo or termo in _normalize(r.nome) or termo in _normalize(r.descricao))
        ]
        if itens:
            grupos.append((cat_slug, cat_label, itens))
    return grupos
