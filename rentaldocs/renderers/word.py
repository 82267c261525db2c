"""
DOCX backend (python-docx).

Same sections as the other backends, laid out with tables. All numbers are
pre-formatted text from the layout plan; there are no fields or formulas.
"""
from io import BytesIO
from typing import Optional

import docx
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Emu, Inches, Pt, RGBColor

from ..branding import LoadedImage
from ..layout import LayoutPlan
from .base import DocumentRenderer

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EMU_PER_PX = 9525

ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}

MUTED = RGBColor(0x55, 0x55, 0x55)


def _set_text(cell, text: str, bold: bool = False, align: str = "left", size: Optional[float] = None):
    paragraph = cell.paragraphs[0]
    paragraph.alignment = ALIGNMENTS[align]
    run = paragraph.add_run(text)
    run.bold = bold
    if size:
        run.font.size = Pt(size)
    return run


def _add_picture(paragraph, image: LoadedImage, max_width: int, max_height: int) -> None:
    width, height = image.scaled(max_width, max_height)
    paragraph.add_run().add_picture(image.stream(), width=Emu(int(width * EMU_PER_PX)),
                                    height=Emu(int(height * EMU_PER_PX)))


class WordRenderer(DocumentRenderer):
    extension = "docx"
    media_type = DOCX_MIME

    def paint(self, plan: LayoutPlan) -> bytes:
        doc = docx.Document()
        section = doc.sections[0]
        for side in ("left_margin", "right_margin", "top_margin", "bottom_margin"):
            setattr(section, side, Inches(0.6))

        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(10)

        self._header(doc, plan)

        title = doc.add_paragraph()
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = title.add_run(plan.title)
        run.bold = True
        run.font.size = Pt(16)

        self._pairs(doc, plan.metadata)

        heading = doc.add_paragraph()
        run = heading.add_run(plan.counterparty_heading)
        run.bold = True
        run.font.size = Pt(12)
        self._pairs(doc, plan.counterparty)

        doc.add_paragraph()
        self._items(doc, plan)
        self._totals(doc, plan)

        for label, lines in (("Notes:", plan.notes_lines), ("Terms and Conditions:", plan.terms_lines)):
            if not lines:
                continue
            heading = doc.add_paragraph()
            heading.paragraph_format.space_before = Pt(14)
            heading.add_run(label).bold = True
            for line in lines:
                doc.add_paragraph(line)

        self._signatures(doc, plan)

        if plan.footer.lines:
            footer = section.footer.paragraphs[0]
            footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
            for index, line in enumerate(plan.footer.lines):
                run = footer.add_run(line)
                run.font.size = Pt(8)
                run.font.color.rgb = MUTED
                if index < len(plan.footer.lines) - 1:
                    run.add_break()

        out = BytesIO()
        doc.save(out)
        return out.getvalue()

    def _header(self, doc, plan: LayoutPlan) -> None:
        logo = plan.images.logo
        if logo is not None:
            table = doc.add_table(rows=1, cols=2)
            _add_picture(table.cell(0, 0).paragraphs[0], logo, 250, 80)
            company_cell = table.cell(0, 1)
        else:
            table = doc.add_table(rows=1, cols=1)
            company_cell = table.cell(0, 0)

        _set_text(company_cell, plan.company_name, bold=True, size=14)
        for line in plan.company_lines:
            company_cell.add_paragraph(line)

    def _pairs(self, doc, pairs) -> None:
        if not pairs:
            return
        table = doc.add_table(rows=len(pairs), cols=2)
        for index, (label, value) in enumerate(pairs):
            _set_text(table.cell(index, 0), label, bold=True)
            _set_text(table.cell(index, 1), value)
            table.cell(index, 0).width = Inches(1.5)
            table.cell(index, 1).width = Inches(4.5)

    def _items(self, doc, plan: LayoutPlan) -> None:
        table = doc.add_table(rows=len(plan.rows) + 1, cols=len(plan.columns))
        table.style = "Table Grid"
        for col_index, column in enumerate(plan.columns):
            _set_text(table.cell(0, col_index), column.label, bold=True, align=column.align)
        for row_index, item_row in enumerate(plan.rows, start=1):
            for col_index, column in enumerate(plan.columns):
                _set_text(table.cell(row_index, col_index), item_row.text(column.key), align=column.align, size=9)

    def _totals(self, doc, plan: LayoutPlan) -> None:
        doc.add_paragraph()
        table = doc.add_table(rows=len(plan.total_lines), cols=2)
        table.alignment = WD_TABLE_ALIGNMENT.RIGHT
        for index, line in enumerate(plan.total_lines):
            size = 12 if line.emphasis else None
            _set_text(table.cell(index, 0), line.label, bold=True, size=size)
            _set_text(table.cell(index, 1), f"{line.text} {plan.currency}", bold=True, align="right", size=size)

    def _signatures(self, doc, plan: LayoutPlan) -> None:
        doc.add_paragraph()
        table = doc.add_table(rows=1, cols=2)
        left, right = table.cell(0, 0), table.cell(0, 1)

        if plan.images.signature is not None:
            _add_picture(left.paragraphs[0], plan.images.signature, 150, 60)
        left.add_paragraph().add_run(plan.footer.authorized_label).font.size = Pt(10)

        seal_paragraph = right.paragraphs[0]
        seal_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        if plan.images.seal is not None:
            _add_picture(seal_paragraph, plan.images.seal, 120, 80)
        date_paragraph = right.add_paragraph()
        date_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        date_paragraph.add_run(plan.footer.date_text).font.size = Pt(10)
