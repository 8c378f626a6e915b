from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Sequence, TypeVar

R = TypeVar("R")


@dataclass(frozen=True)
class GroupSummary:
    key: str
    count: int
    percentage: int

    def as_row(self) -> list[str]:
        return [self.key or "—", str(self.count), f"{self.percentage}%"]


def percentage(part: int, total: int) -> int:
    """
    Percentual inteiro arredondado "para cima no meio" (2/3 -> 67, 1/8 -> 13).
    total == 0 devolve 0.
    """
    if not total:
        return 0
    value = Decimal(part) * 100 / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _summarize(keys: Sequence[str]) -> list[GroupSummary]:
    total = len(keys)
    counts: dict[str, int] = {}
    for k in keys:
        counts[k] = counts.get(k, 0) + 1

    # sorted() é estável: empates mantêm a ordem da primeira ocorrência
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    return [GroupSummary(key=k, count=c, percentage=percentage(c, total)) for k, c in ordered]


def aggregate(records: Iterable[R], key_fn: Callable[[R], str]) -> list[GroupSummary]:
    """
    Agrupa registros por `key_fn` e devolve contagem + percentual por grupo.

    - ordenado por contagem (desc); empate respeita a primeira aparição da chave
    - chave vazia ("") vira um grupo como qualquer outro
    - se `key_fn` levantar exceção, nada é devolvido (a exceção sobe)
    """
    keys = [key_fn(r) for r in records]
    return _summarize(keys)


def aggregate_multi(records: Iterable[R], keys_fn: Callable[[R], Iterable[str]]) -> list[GroupSummary]:
    """
    Variante para registros com várias chaves (ex.: necessidades de um atendimento).
    O total usado no percentual é o número de chaves emitidas, não de registros.
    """
    keys: list[str] = []
    for r in records:
        keys.extend(keys_fn(r))
    return _summarize(keys)


def breakdown(
    records: Iterable[R],
    key_fn: Callable[[R], str],
    sub_key_fn: Callable[[R], str],
) -> dict[str, list[GroupSummary]]:
    """
    Distribuição de `sub_key_fn` dentro de cada grupo de `key_fn`.
    Os grupos saem na ordem de `aggregate(records, key_fn)`.
    """
    items = [(key_fn(r), sub_key_fn(r)) for r in records]

    buckets: dict[str, list[str]] = {}
    for key, sub in items:
        buckets.setdefault(key, []).append(sub)

    order = _summarize([key for key, _ in items])
    return {g.key: _summarize(buckets[g.key]) for g in order}


def with_all_keys(groups: Sequence[GroupSummary], keys: Iterable[str]) -> list[GroupSummary]:
    """Completa `groups` com as chaves esperadas que não apareceram (contagem zero)."""
    seen = {g.key for g in groups}
    result = list(groups)
    for k in keys:
        if k not in seen:
            seen.add(k)
            result.append(GroupSummary(key=k, count=0, percentage=0))
    return result


def count_of(groups: Sequence[GroupSummary], key: str) -> int:
    for g in groups:
        if g.key == key:
            return g.count
    return 0
