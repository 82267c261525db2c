"""
XLSX backend (openpyxl).

Item and totals cells are live formulas over the item rows, so a recipient
can re-check or re-price the sheet. Literal values are used only where the
numbers have no inputs on the sheet: flat (legacy) tax amounts and the
document level tax or receipt used when no line carries one.
"""
from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..branding import LoadedImage
from ..layout import MONEY_FORMAT, LayoutPlan
from .base import DocumentRenderer

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# --- Styles ---
TITLE_FONT = Font(bold=True, size=16)
COMPANY_FONT = Font(bold=True, size=14)
SECTION_FONT = Font(bold=True, size=12)
BOLD = Font(bold=True)
TOTAL_FONT = Font(bold=True, size=12)
SMALL_FONT = Font(size=10)
SECTION_FILL = PatternFill(start_color="FFF0F0F0", end_color="FFF0F0F0", fill_type="solid")
HEADER_FILL = PatternFill(start_color="FFE0E0E0", end_color="FFE0E0E0", fill_type="solid")
THIN = Side(style="thin")
HEADER_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
ROW_BORDER = Border(left=THIN, right=THIN, bottom=THIN)
LEFT = Alignment(horizontal="left", vertical="center")
RIGHT = Alignment(horizontal="right", vertical="center")

# default row height in px, used to reserve rows under the logo
ROW_HEIGHT_PX = 20


def cell_ref(row: int, col: int) -> str:
    """1-based row/column to A1 notation; col 27 is "AA"."""
    if row < 1 or col < 1:
        raise ValueError(f"row and column are 1-based, got ({row}, {col})")
    return f"{get_column_letter(col)}{row}"


def cell_range(first_row: int, last_row: int, col: int) -> str:
    return f"{cell_ref(first_row, col)}:{cell_ref(last_row, col)}"


class SpreadsheetRenderer(DocumentRenderer):
    extension = "xlsx"
    media_type = XLSX_MIME

    def _add_image(self, ws: Worksheet, image: LoadedImage, anchor: str, max_width: int, max_height: int):
        picture = XLImage(image.stream())
        picture.width, picture.height = image.scaled(max_width, max_height)
        ws.add_image(picture, anchor)
        return picture

    def _label_value(self, ws: Worksheet, row: int, label: str, value: str) -> None:
        ws.cell(row=row, column=1, value=label).font = BOLD
        ws.cell(row=row, column=1).alignment = LEFT
        ws.cell(row=row, column=2, value=value).alignment = LEFT

    def paint(self, plan: LayoutPlan) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = plan.kind.label
        width = max(len(plan.columns), 1)
        row = 1

        # Header: logo, then company block
        logo = plan.images.logo
        if logo is not None:
            picture = self._add_image(ws, logo, "A1", 250, 80)
            row = max(1, -(-int(picture.height) // ROW_HEIGHT_PX)) + 1

        ws.cell(row=row, column=1, value=plan.company_name).font = COMPANY_FONT
        row += 1
        for line in plan.company_lines:
            ws.cell(row=row, column=1, value=line).alignment = LEFT
            row += 1
        row += 1

        ws.cell(row=row, column=1, value=plan.title).font = TITLE_FONT
        ws.cell(row=row, column=1).alignment = Alignment(horizontal="center")
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
        row += 2

        for label, value in plan.metadata:
            self._label_value(ws, row, label, value)
            row += 1
        row += 1

        heading = ws.cell(row=row, column=1, value=plan.counterparty_heading)
        heading.font = SECTION_FONT
        heading.fill = SECTION_FILL
        row += 1
        for label, value in plan.counterparty:
            self._label_value(ws, row, label, value)
            row += 1
        row += 1

        row = self._paint_items(ws, plan, row)
        row = self._paint_notes(ws, plan, row, width)
        self._paint_footer(ws, plan, row + 2, width)

        for index, column in enumerate(plan.columns, start=1):
            ws.column_dimensions[get_column_letter(index)].width = column.width

        ws.page_setup.orientation = "landscape" if width > 9 else "portrait"
        ws.page_setup.fitToWidth = 1
        ws.sheet_properties.pageSetUpPr.fitToPage = True
        if plan.footer.lines:
            ws.oddFooter.center.text = "\n".join(plan.footer.lines)
            ws.oddFooter.center.size = 8

        out = BytesIO()
        wb.save(out)
        return out.getvalue()

    def _paint_items(self, ws: Worksheet, plan: LayoutPlan, row: int) -> int:
        for index, column in enumerate(plan.columns, start=1):
            cell = ws.cell(row=row, column=index, value=column.label)
            cell.font = BOLD
            cell.fill = HEADER_FILL
            cell.border = HEADER_BORDER
            cell.alignment = Alignment(horizontal=column.align, vertical="center")
        row += 1

        col = plan.column_index
        qty, rate, gross, pct, tax, net = (col("quantity"), col("rate"), col("grossAmount"),
                                           col("taxPercent"), col("taxAmount"), col("netAmount"))

        first_item_row = row
        for item_row in plan.rows:
            for index, column in enumerate(plan.columns, start=1):
                if index == gross:
                    value = f"={cell_ref(row, qty)}*{cell_ref(row, rate)}"
                elif index == tax and item_row.tax_percent is not None:
                    value = f"=({cell_ref(row, qty)}*{cell_ref(row, rate)}*{cell_ref(row, pct)})/100"
                elif index == net:
                    value = f"={cell_ref(row, gross)}+{cell_ref(row, tax)}"
                else:
                    value = item_row.value(column.key)
                cell = ws.cell(row=row, column=index, value=value)
                if column.num_format:
                    cell.number_format = column.num_format
                cell.alignment = Alignment(horizontal=column.align, vertical="center")
                cell.border = ROW_BORDER
            row += 1
        last_item_row = row - 1

        return self._paint_totals(ws, plan, row + 1, first_item_row, last_item_row)

    def _paint_totals(self, ws: Worksheet, plan: LayoutPlan, row: int, first: int, last: int) -> int:
        col = plan.column_index
        value_col = col("netAmount")
        totals = plan.totals
        placed = {}

        formulas = {
            "subtotal": f"=SUM({cell_range(first, last, col('grossAmount'))})",
            "tax": (f"=SUM({cell_range(first, last, col('taxAmount'))})"
                    if totals.uses_item_tax else None),
        }
        received_col: Optional[int] = col("amountReceived")
        item_receipts = any(item_row.received for item_row in plan.rows)
        if received_col and item_receipts:
            formulas["amountReceived"] = f"=SUM({cell_range(first, last, received_col)})"

        for line in plan.total_lines:
            if line.key == "total":
                value = f"={cell_ref(placed['subtotal'], value_col)}+{cell_ref(placed['tax'], value_col)}"
            elif line.key == "pending":
                value = f"={cell_ref(placed['total'], value_col)}-{cell_ref(placed['amountReceived'], value_col)}"
            else:
                value = formulas.get(line.key) or line.value

            label = ws.cell(row=row, column=1, value=line.label)
            label.font = TOTAL_FONT if line.emphasis else BOLD
            label.alignment = LEFT
            cell = ws.cell(row=row, column=value_col, value=value)
            cell.number_format = MONEY_FORMAT
            cell.font = TOTAL_FONT if line.emphasis else BOLD
            cell.alignment = RIGHT
            placed[line.key] = row
            row += 1
        return row

    def _paint_notes(self, ws: Worksheet, plan: LayoutPlan, row: int, width: int) -> int:
        for heading, lines in (("Notes:", plan.notes_lines), ("Terms and Conditions:", plan.terms_lines)):
            if not lines:
                continue
            row += 1
            ws.cell(row=row, column=1, value=heading).font = BOLD
            row += 1
            for line in lines:
                ws.cell(row=row, column=1, value=line).alignment = Alignment(wrap_text=True, vertical="top")
                ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
                row += 1
        return row

    def _paint_footer(self, ws: Worksheet, plan: LayoutPlan, row: int, width: int) -> None:
        footer = plan.footer
        ws.cell(row=row, column=1, value=footer.authorized_label).font = SMALL_FONT
        date_cell = ws.cell(row=row, column=width, value=footer.date_text)
        date_cell.font = SMALL_FONT
        date_cell.alignment = Alignment(horizontal="right")

        image_row = row + 1
        if plan.images.signature is not None:
            self._add_image(ws, plan.images.signature, cell_ref(image_row, 1), 180, 80)
            ws.row_dimensions[image_row].height = 60
        if plan.images.seal is not None:
            seal_col = width - 1 if width > 4 else width
            self._add_image(ws, plan.images.seal, cell_ref(image_row, max(seal_col, 1)), 150, 100)

        # signature/seal occupy roughly five default rows
        row = image_row + 5
        for line in footer.lines:
            cell = ws.cell(row=row, column=1, value=line)
            cell.font = SMALL_FONT
            cell.alignment = Alignment(horizontal="center")
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
            row += 1
