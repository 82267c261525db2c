"""
PDF backend (reportlab platypus).

The item table repeats its header on every page and platypus splits it
across as many pages as needed; each page gets the footer lines and a page
number.
"""
from io import BytesIO
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..branding import LoadedImage
from ..layout import LayoutPlan
from .base import DocumentRenderer

PDF_MIME = "application/pdf"

# CSS px to PDF points
PT_PER_PX = 0.75
MARGIN = 15 * mm
FOOTER_LINE_HEIGHT = 9

HEADER_GREY = colors.HexColor("#E0E0E0")
GRID_GREY = colors.HexColor("#999999")
MUTED = colors.HexColor("#555555")

_styles = getSampleStyleSheet()
BODY = ParagraphStyle("Body", parent=_styles["Normal"], fontSize=9, leading=11)
CELL = ParagraphStyle("Cell", parent=BODY, fontSize=8, leading=10)
COMPANY = ParagraphStyle("Company", parent=BODY, fontName="Helvetica-Bold", fontSize=14, leading=17)
TITLE = ParagraphStyle("Title", parent=BODY, fontName="Helvetica-Bold", fontSize=16, leading=20,
                       alignment=TA_CENTER, spaceBefore=6, spaceAfter=8)
SECTION = ParagraphStyle("Section", parent=BODY, fontName="Helvetica-Bold", fontSize=11, leading=14,
                         spaceBefore=8, spaceAfter=2)
SMALL_RIGHT = ParagraphStyle("SmallRight", parent=BODY, alignment=TA_RIGHT)


def _image(image: LoadedImage, max_width: int, max_height: int) -> Image:
    width, height = image.scaled(max_width, max_height)
    return Image(image.stream(), width=width * PT_PER_PX, height=height * PT_PER_PX)


class PdfRenderer(DocumentRenderer):
    extension = "pdf"
    media_type = PDF_MIME

    # --- Table contents (plain text, shared with tests) ---

    def items_table_data(self, plan: LayoutPlan) -> List[List[str]]:
        data = [[column.label for column in plan.columns]]
        for item_row in plan.rows:
            data.append([item_row.text(column.key) for column in plan.columns])
        return data

    def totals_table_data(self, plan: LayoutPlan) -> List[List[str]]:
        return [[line.label, f"{line.text} {plan.currency}"] for line in plan.total_lines]

    # --- Painting ---

    def paint(self, plan: LayoutPlan) -> bytes:
        buf = BytesIO()
        pagesize = landscape(A4) if len(plan.columns) > 10 else A4
        footer_height = (len(plan.footer.lines) + 1) * FOOTER_LINE_HEIGHT
        doc = SimpleDocTemplate(
            buf,
            pagesize=pagesize,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN + footer_height,
            title=f"{plan.title} {plan.number}",
        )

        story = []
        story.append(self._header(plan, doc.width))
        story.append(Paragraph(escape(plan.title), TITLE))
        story.append(self._pairs(plan.metadata, doc.width))
        story.append(Paragraph(escape(plan.counterparty_heading), SECTION))
        story.append(self._pairs(plan.counterparty, doc.width))
        story.append(Spacer(1, 6 * mm))
        story.append(self._items(plan, doc.width))
        story.append(Spacer(1, 4 * mm))
        story.append(self._totals(plan, doc.width))

        for heading, lines in (("Notes:", plan.notes_lines), ("Terms and Conditions:", plan.terms_lines)):
            if lines:
                story.append(Paragraph(heading, SECTION))
                story.extend(Paragraph(escape(line), BODY) for line in lines)

        story.append(Spacer(1, 8 * mm))
        story.append(KeepTogether(self._signatures(plan, doc.width)))

        def decorate(canvas, document):
            canvas.saveState()
            canvas.setFont("Helvetica", 7)
            canvas.setFillColor(MUTED)
            width, _ = pagesize
            y = MARGIN
            for line in reversed(plan.footer.lines):
                canvas.drawCentredString(width / 2, y, line)
                y += FOOTER_LINE_HEIGHT
            canvas.drawRightString(width - MARGIN, MARGIN - FOOTER_LINE_HEIGHT, f"Page {document.page}")
            canvas.restoreState()

        doc.build(story, onFirstPage=decorate, onLaterPages=decorate)
        return buf.getvalue()

    def _header(self, plan: LayoutPlan, width: float) -> Table:
        company = [Paragraph(escape(plan.company_name), COMPANY)]
        company += [Paragraph(escape(line), BODY) for line in plan.company_lines]
        if plan.images.logo is not None:
            logo = _image(plan.images.logo, 250, 80)
            logo_width = logo.drawWidth + 6 * mm
            table = Table([[logo, company]], colWidths=[logo_width, width - logo_width])
        else:
            table = Table([[company]], colWidths=[width])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return table

    def _pairs(self, pairs, width: float) -> Table:
        data = [[Paragraph(f"<b>{escape(label)}</b>", BODY), Paragraph(escape(value or ""), BODY)]
                for label, value in pairs]
        table = Table(data, colWidths=[35 * mm, width - 35 * mm], hAlign="LEFT")
        table.setStyle(TableStyle([
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("TOPPADDING", (0, 0), (-1, -1), 1),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
        ]))
        return table

    def _items(self, plan: LayoutPlan, width: float) -> Table:
        data = self.items_table_data(plan)
        # wrap free text columns, keep numbers on one line
        for row in data[1:]:
            for index, column in enumerate(plan.columns):
                if not column.numeric:
                    row[index] = Paragraph(escape(row[index]), CELL)

        total_weight = sum(column.width for column in plan.columns)
        col_widths = [width * column.width / total_weight for column in plan.columns]
        table = Table(data, colWidths=col_widths, repeatRows=1)

        style = [
            ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 8),
            ("FONT", (0, 1), (-1, -1), "Helvetica", 8),
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_GREY),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        for index, column in enumerate(plan.columns):
            style.append(("ALIGN", (index, 0), (index, -1), column.align.upper()))
        table.setStyle(TableStyle(style))
        return table

    def _totals(self, plan: LayoutPlan, width: float) -> Table:
        data = self.totals_table_data(plan)
        table = Table(data, colWidths=[45 * mm, 40 * mm], hAlign="RIGHT")
        style = [
            ("FONT", (0, 0), (-1, -1), "Helvetica-Bold", 9),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ]
        for index, line in enumerate(plan.total_lines):
            if line.emphasis:
                style.append(("FONT", (0, index), (-1, index), "Helvetica-Bold", 11))
                style.append(("LINEABOVE", (0, index), (-1, index), 0.75, colors.black))
        table.setStyle(TableStyle(style))
        return table

    def _signatures(self, plan: LayoutPlan, width: float) -> List:
        left = []
        if plan.images.signature is not None:
            left.append(_image(plan.images.signature, 180, 80))
        left.append(Paragraph(escape(plan.footer.authorized_label), BODY))

        right = []
        if plan.images.seal is not None:
            seal = _image(plan.images.seal, 150, 100)
            seal.hAlign = "RIGHT"
            right.append(seal)
        right.append(Paragraph(escape(plan.footer.date_text), SMALL_RIGHT))

        table = Table([[left, right]], colWidths=[width / 2, width / 2])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return [table]
