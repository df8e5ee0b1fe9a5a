import openpyxl
from pathlib import Path


def _cell_text(value):
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ExcelAdapter:
    def can_handle(self, file_path):
        return Path(file_path).suffix.lower() == ".xlsx"

    def read(self, file_path):
        if not Path(file_path).exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        wb = openpyxl.load_workbook(file_path, data_only=True)
        ws = wb.active

        rows = []
        for row in ws.iter_rows(values_only=True):
            cells = [_cell_text(value) for value in row]
            if any(cells):
                rows.append(cells)

        return rows

    def write(self, rows, file_path):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Products"

        for row_idx, row in enumerate(rows, start=1):
            for col_idx, value in enumerate(row, start=1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                # a description starting with "=" is text, not a formula
                if isinstance(value, str) and value.startswith("="):
                    cell.data_type = "s"

        wb.save(file_path)
