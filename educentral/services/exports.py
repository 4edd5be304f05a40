"""PDF and spreadsheet exports.

Both builders take a list of column headers and a list of row lists and
return the file as bytes; ``download_response`` wraps those bytes in a
Flask response with the right MIME type and attachment filename.
"""

import io
from datetime import datetime
from xml.sax.saxutils import escape

from flask import Response
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
PDF_MIMETYPE = 'application/pdf'


def _cell(value):
    if value is None:
        return '-'
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y')
    return value


def build_xlsx(sheet_title, headers, rows):
    wb = Workbook()
    ws = wb.active
    # Excel caps sheet titles at 31 characters
    ws.title = sheet_title[:31]
    ws.append(headers)
    for row in rows:
        ws.append([_cell(v) for v in row])

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color='E0E0E0', end_color='E0E0E0', fill_type='solid')
    for idx, header in enumerate(headers, start=1):
        col = get_column_letter(idx)
        ws[f'{col}1'].font = header_font
        ws[f'{col}1'].fill = header_fill
        width = max([len(str(header))] + [len(str(_cell(r[idx - 1]))) for r in rows if len(r) >= idx])
        ws.column_dimensions[col].width = min(width + 2, 50)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def build_pdf(title, headers, rows, subtitle=None):
    buffer = io.BytesIO()
    styles = getSampleStyleSheet()
    pagesize = landscape(A4) if len(headers) > 6 else A4
    doc = SimpleDocTemplate(buffer, pagesize=pagesize, leftMargin=28, rightMargin=28,
                            topMargin=28, bottomMargin=28, title=title)
    elements = [Paragraph(escape(title), styles['Title'])]
    if subtitle:
        elements.append(Paragraph(escape(subtitle), styles['Normal']))
    elements.append(Spacer(1, 12))

    body_style = styles['BodyText']
    table_data = [headers]
    for row in rows:
        table_data.append([Paragraph(escape(str(_cell(v))), body_style) for v in row])
    if not rows:
        table_data.append(['Tidak ada data'] + [''] * (len(headers) - 1))

    table = Table(table_data, hAlign='LEFT', repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    elements.append(table)
    doc.build(elements)
    pdf_value = buffer.getvalue()
    buffer.close()
    return pdf_value


def download_response(fmt, filename, title, headers, rows, subtitle=None):
    """Build the export in ``fmt`` ('pdf' or 'xlsx') and return it as a download."""
    if fmt == 'pdf':
        data = build_pdf(title, headers, rows, subtitle=subtitle)
        mimetype = PDF_MIMETYPE
    else:
        fmt = 'xlsx'
        data = build_xlsx(title, headers, rows)
        mimetype = XLSX_MIMETYPE
    return Response(
        data,
        mimetype=mimetype,
        headers={'Content-Disposition': f'attachment;filename={filename}.{fmt}'}
    )


def export_stamp(now=None):
    return (now or datetime.now()).strftime('%Y%m%d')


def safe_filename_part(text):
    return ''.join(c if c.isalnum() else '_' for c in (text or '')).strip('_') or 'Data'
