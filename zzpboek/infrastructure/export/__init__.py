"""File exports: XAF auditfile and Excel workbooks."""

from zzpboek.infrastructure.export.excel import XLSX_CONTENT_TYPE, Column, Sheet, export_workbook, read_rows
from zzpboek.infrastructure.export.xaf import XAF_NAMESPACE, build_xaf, xaf_filename
