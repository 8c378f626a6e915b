from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Generic, Iterable, Literal, Sequence, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_EMPTY_MESSAGE = "Nenhum dado encontrado"
LOADING_MESSAGE = "Carregando..."


# =========================
# ACESSORES (variante com tag)
# =========================
@dataclass(frozen=True)
class FieldAccessor:
    key: str
    kind: Literal["field"] = "field"


@dataclass(frozen=True)
class DeriveAccessor(Generic[T]):
    fn: Callable[[T], Any]
    kind: Literal["derive"] = "derive"


ColumnAccessor = Union[FieldAccessor, DeriveAccessor]


def field(key: str) -> FieldAccessor:
    return FieldAccessor(key=key)


def derive(fn: Callable[[T], Any]) -> DeriveAccessor:
    return DeriveAccessor(fn=fn)


@dataclass(frozen=True)
class Column(Generic[T]):
    header: str
    accessor: ColumnAccessor
    width: str = ""
    css_class: str = ""


@dataclass(frozen=True)
class Cell:
    """Valor de célula "rico" que um acessor `derive` pode devolver."""
    text: str = ""
    url: str = ""
    badge: str = ""  # success | danger | warning | info | secondary
    title: str = ""


# =========================
# SAÍDA
# =========================
RowKind = Literal["loading", "empty", "data"]


@dataclass
class TableRow(Generic[T]):
    kind: RowKind
    key: str = ""
    cells: list[Any] = dc_field(default_factory=list)
    record: Any = None
    message: str = ""
    _on_click: Callable[[T], Any] | None = None

    @property
    def clickable(self) -> bool:
        return self.kind == "data" and self._on_click is not None

    def activate(self):
        """Dispara o `on_row_click` com o registro completo da linha."""
        if not self.clickable:
            return None
        return self._on_click(self.record)


@dataclass
class TableView(Generic[T]):
    headers: list[dict[str, str]]
    rows: list[TableRow[T]]

    @property
    def colspan(self) -> int:
        return max(len(self.headers), 1)

    @property
    def state(self) -> RowKind:
        if len(self.rows) == 1 and self.rows[0].kind != "data":
            return self.rows[0].kind
        return "data"

    @property
    def is_loading(self) -> bool:
        return self.state == "loading"

    @property
    def is_empty(self) -> bool:
        return self.state == "empty"

    def __len__(self) -> int:
        return len(self.rows)


def resolve_cell(record: Any, accessor: ColumnAccessor) -> Any:
    if accessor.kind == "derive":
        return accessor.fn(record)
    if accessor.kind == "field":
        if isinstance(record, Mapping):
            return record[accessor.key]
        return getattr(record, accessor.key)
    raise TypeError(f"Acessor desconhecido: {accessor!r}")


def build_table(
    columns: Sequence[Column[T]],
    data: Iterable[T],
    key_extractor: Callable[[T], str],
    *,
    on_row_click: Callable[[T], Any] | None = None,
    is_loading: bool = False,
    empty_message: str | None = None,
) -> TableView[T]:
    """
    Projeta `data` em cabeçalhos + linhas.

    Precedência: carregando > vazio > uma linha por item (na ordem recebida).
    Não ordena, não altera os registros e não captura exceções dos acessores.
    """
    headers = [{"label": c.header, "width": c.width, "css_class": c.css_class} for c in columns]

    if is_loading:
        return TableView(headers=headers, rows=[TableRow(kind="loading", message=LOADING_MESSAGE)])

    items = list(data)
    if not items:
        message = DEFAULT_EMPTY_MESSAGE if empty_message is None else empty_message
        return TableView(headers=headers, rows=[TableRow(kind="empty", message=message)])

    rows: list[TableRow[T]] = []
    seen: set[str] = set()
    for item in items:
        key = key_extractor(item)
        if key in seen:
            logger.warning("Chave de linha duplicada na tabela: %r", key)
        seen.add(key)
        rows.append(
            TableRow(
                kind="data",
                key=key,
                cells=[resolve_cell(item, c.accessor) for c in columns],
                record=item,
                _on_click=on_row_click,
            )
        )
    return TableView(headers=headers, rows=rows)
