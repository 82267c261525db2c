"""
HTML preview backend (Jinja2), the same layout plan as a standalone page.
"""
import base64
import os
from html import escape

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from ..branding import LoadedImage
from ..layout import LayoutPlan
from ..logging_setup import setup_logger
from .base import DocumentRenderer

logger = setup_logger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"])
)


def data_url(image: LoadedImage) -> str:
    return f"data:image/{image.extension};base64,{base64.b64encode(image.data).decode('ascii')}"


env.filters["data_url"] = data_url


class HtmlRenderer(DocumentRenderer):
    extension = "html"
    media_type = "text/html; charset=utf-8"

    def paint(self, plan: LayoutPlan) -> bytes:
        try:
            template = env.get_template("document.html")
            html = template.render(plan=plan)
        except TemplateNotFound:
            logger.warning("document template missing; using plain fallback")
            rows = "".join(
                f"<li>{escape(row.text('description'))} - {row.text('quantity')} x {row.text('rate')}</li>"
                for row in plan.rows
            )
            total = plan.total_line("total")
            html = f"""<!doctype html><html><body>
            <h2>{escape(plan.title)}</h2>
            <div>No: {escape(plan.number)}</div>
            <ul>{rows}</ul>
            <p><b>Total:</b> {total.text} {escape(plan.currency)}</p>
            </body></html>"""
        return html.encode("utf-8")
