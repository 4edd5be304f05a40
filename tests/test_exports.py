import io
from datetime import datetime

from openpyxl import load_workbook

from educentral.services import exports

HEADERS = ['No.', 'Nama', 'Kelas']


def test_xlsx_has_header_row_and_formatted_cells():
    rows = [[1, 'Andi & Bunga', '4A'], [2, None, datetime(2025, 3, 5)]]
    data = exports.build_xlsx('Data Siswa dengan judul yang sangat panjang sekali', HEADERS, rows)

    ws = load_workbook(io.BytesIO(data)).active
    assert len(ws.title) <= 31
    assert [c.value for c in ws[1]] == HEADERS
    assert ws['A1'].font.bold
    assert [c.value for c in ws[3]] == [2, '-', '05/03/2025']


def test_pdf_is_produced_for_rows_and_for_empty_exports():
    assert exports.build_pdf('Data Guru', HEADERS, [[1, 'Siti <Wali>', '4A']]).startswith(b'%PDF')
    assert exports.build_pdf('Data Guru', HEADERS, [], subtitle='Kelas: 4A').startswith(b'%PDF')


def test_download_response_sets_type_and_filename(app):
    with app.test_request_context():
        pdf = exports.download_response('pdf', 'Data_Guru_20250305', 'Data Guru', HEADERS, [])
        xlsx = exports.download_response('csv', 'Data_Guru_20250305', 'Data Guru', HEADERS, [])

    assert pdf.mimetype == exports.PDF_MIMETYPE
    assert pdf.headers['Content-Disposition'] == 'attachment;filename=Data_Guru_20250305.pdf'
    assert xlsx.mimetype == exports.XLSX_MIMETYPE
    assert xlsx.headers['Content-Disposition'].endswith('.xlsx')


def test_filename_helpers():
    assert exports.export_stamp(datetime(2025, 3, 5)) == '20250305'
    assert exports.safe_filename_part('Andi Pratama / 4A') == 'Andi_Pratama___4A'
    assert exports.safe_filename_part('') == 'Data'
