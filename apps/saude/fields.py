from __future__ import annotations

from dataclasses import dataclass

from .models import FichaSaude


@dataclass(frozen=True)
class CampoDetalhe:
    key: str
    label: str
    numeric: bool = False


DETALHES_POR_TIPO: dict[str, list[CampoDetalhe]] = {
    FichaSaude.Tipo.ODONTOLOGICA: [
        CampoDetalhe("historico_odontologico", "Histórico odontológico"),
        CampoDetalhe("higiene_bucal", "Hábitos de higiene bucal"),
        CampoDetalhe("tratamentos_anteriores", "Tratamentos anteriores"),
    ],
    FichaSaude.Tipo.PSICOLOGICA: [
        CampoDetalhe("historico_emocional", "Histórico emocional"),
        CampoDetalhe("avaliacao_comportamento", "Avaliação de comportamento"),
        CampoDetalhe("diagnostico", "Diagnóstico"),
        CampoDetalhe("encaminhamentos", "Encaminhamentos"),
    ],
    FichaSaude.Tipo.NUTRICIONAL: [
        CampoDetalhe("avaliacao_nutricional", "Avaliação nutricional"),
        CampoDetalhe("habitos_alimentares", "Hábitos alimentares"),
        CampoDetalhe("imc", "IMC", numeric=True),
        CampoDetalhe("plano_alimentar", "Plano alimentar sugerido"),
    ],
    FichaSaude.Tipo.MEDICA: [
        CampoDetalhe("historico_clinico", "Histórico clínico"),
        CampoDetalhe("alergias", "Alergias"),
        CampoDetalhe("medicamentos", "Medicamentos"),
        CampoDetalhe("condicoes_preexistentes", "Condições preexistentes"),
    ],
}

# Campos usados no relatório de condições (texto livre que indica uma condição registrada)
CAMPOS_CONDICAO = {
    FichaSaude.Tipo.ODONTOLOGICA: "tratamentos_anteriores",
    FichaSaude.Tipo.PSICOLOGICA: "diagnostico",
    FichaSaude.Tipo.NUTRICIONAL: "avaliacao_nutricional",
    FichaSaude.Tipo.MEDICA: "condicoes_preexistentes",
}
