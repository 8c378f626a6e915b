from django import template
from django.utils.html import format_html, format_html_join

from apps.core.ui.tables import Cell

register = template.Library()

EMPTY_CELL = "—"


def _cell_html(value):
    if isinstance(value, Cell):
        text = value.text or EMPTY_CELL
        if value.badge and value.url:
            return format_html(
                '<a class="badge badge--{}" href="{}" title="{}">{}</a>', value.badge, value.url, value.title, text
            )
        if value.badge:
            return format_html('<span class="badge badge--{}" title="{}">{}</span>', value.badge, value.title, text)
        if value.url:
            return format_html('<a href="{}" title="{}">{}</a>', value.url, value.title, text)
        return format_html('<span title="{}">{}</span>', value.title, text)
    if value is None or value == "":
        return EMPTY_CELL
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    return format_html("{}", value)


@register.filter
def render_cell(value):
    """
    Renderiza o valor de uma célula da tabela genérica:
    escalar, `Cell`, ou lista/tupla de ambos (ex.: vários badges).
    """
    if isinstance(value, (list, tuple)):
        if not value:
            return EMPTY_CELL
        return format_html_join(" ", "{}", ((_cell_html(v),) for v in value))
    return _cell_html(value)


@register.inclusion_tag("core/_table.html")
def data_table(table):
    return {"table": table}
