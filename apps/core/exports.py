import base64
import csv
import hashlib
import logging
from io import BytesIO

from django.conf import settings
from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    return str(value)


def export_csv(filename: str, headers: list[str], rows: list[list]):
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    response["X-Content-Type-Options"] = "nosniff"
    # BOM para Excel abrir UTF-8 certo
    response.write("\ufeff")
    w = csv.writer(response, delimiter=";")
    w.writerow(headers)
    for r in rows:
        w.writerow([_as_text(v) for v in r])
    return response


def export_xlsx(filename: str, title: str, headers: list[str], rows: list[list]):
    wb = Workbook()
    ws = wb.active
    ws.title = "Relatório"
    ws.append([title])
    ws["A1"].font = Font(bold=True, size=13)
    ws.append([])
    ws.append(headers)
    for cell in ws[3]:
        cell.font = Font(bold=True)
    for r in rows:
        ws.append([v if isinstance(v, (int, float)) else _as_text(v) for v in r])

    buffer = BytesIO()
    wb.save(buffer)

    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    response["X-Content-Type-Options"] = "nosniff"
    return response


def render_text_report(title: str, description: str, headers: list[str], rows: list[list], summary: list[tuple[str, str]] | None = None) -> str:
    """
    Relatório em texto (tabela estilo markdown), o mesmo formato do
    "Baixar relatório" da tela de relatórios.
    """
    lines = [f"# {title}", ""]
    if description:
        lines += [description, ""]
    if summary:
        lines.append("## Resumo")
        lines += [f"{label}: {value}" for label, value in summary]
        lines.append("")
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("|" + "|".join("---" for _ in headers) + "|")
    for r in rows:
        lines.append("| " + " | ".join(_as_text(v) for v in r) + " |")
    return "\n".join(lines) + "\n"


def export_txt(filename: str, content: str):
    response = HttpResponse(content, content_type="text/plain; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    response["X-Content-Type-Options"] = "nosniff"
    return response


def _make_report_hash(title: str, headers: list[str], rows: list[list], user_str: str, dt_str: str) -> str:
    # Hash curto para identificar o relatório impresso
    raw = f"{title}|{user_str}|{dt_str}|{headers}|{rows}".encode("utf-8", errors="ignore")
    return hashlib.sha256(raw).hexdigest()[:16].upper()


def _try_make_qr_data_uri(text: str) -> str | None:
    """
    Gera QR Code como data URI (PNG base64).
    Se a lib `qrcode` não estiver instalada, retorna None.
    """
    try:
        import qrcode  # type: ignore
    except ImportError:
        return None

    img = qrcode.make(text)
    buf = BytesIO()
    img.save(buf, format="PNG")
    b64 = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"


def export_pdf_table(
    request,
    *,
    filename: str,
    title: str,
    headers: list[str],
    rows: list[list],
    subtitle: str = "",
    filtros: str = "",
):
    """
    PDF institucional via WeasyPrint:
      - Cabeçalho com nome da organização e título
      - Metadados: gerado em, usuário que imprimiu
      - Tabela
      - Hash do relatório e QR Code (se disponível)
    Template: templates/core/relatorios/pdf/table.html
    """
    from weasyprint import HTML

    printed_at = timezone.localtime()
    printed_at_str = printed_at.strftime("%d/%m/%Y %H:%M")
    printed_by = getattr(request.user, "username", "—")

    str_rows = [[_as_text(v) for v in r] for r in rows]
    report_hash = _make_report_hash(title, headers, str_rows, printed_by, printed_at_str)
    qr_text = f"AMAR|{title}|{printed_at_str}|{printed_by}|{report_hash}"

    context = {
        "org_name": getattr(settings, "AMAR_ORG_NAME", ""),
        "title": title,
        "subtitle": subtitle,
        "filtros": filtros,
        "printed_at": printed_at_str,
        "printed_by": printed_by,
        "headers": headers,
        "rows": str_rows,
        "report_hash": report_hash,
        "qr_data_uri": _try_make_qr_data_uri(qr_text),
    }

    html = render_to_string("core/relatorios/pdf/table.html", context, request=request)
    pdf_bytes = HTML(string=html, base_url=request.build_absolute_uri("/")).write_pdf()
    logger.info("PDF gerado: %s (%s linhas) por %s", filename, len(rows), printed_by)

    resp = HttpResponse(pdf_bytes, content_type="application/pdf")
    resp["Content-Disposition"] = f'attachment; filename="{filename}"'
    resp["X-Content-Type-Options"] = "nosniff"
    return resp


def export_table(request, fmt: str, *, basename: str, title: str, headers: list[str], rows: list[list], **pdf_kwargs):
    """Despacha `?export=csv|xlsx|pdf` para o exportador certo (None se formato desconhecido)."""
    if fmt == "csv":
        return export_csv(f"{basename}.csv", headers, rows)
    if fmt == "xlsx":
        return export_xlsx(f"{basename}.xlsx", title, headers, rows)
    if fmt == "pdf":
        return export_pdf_table(request, filename=f"{basename}.pdf", title=title, headers=headers, rows=rows, **pdf_kwargs)
    return None
