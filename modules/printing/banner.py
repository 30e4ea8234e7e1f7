"""
Banner pages for PDF jobs.
Renders a small info page (filename, print time, page count) via WeasyPrint
and wraps the source document with it: banner, document, banner.
"""

import logging
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_banner_html(filename: str, printed_at: datetime, total_pages: int,
                       width_pt: float, height_pt: float) -> str:
    template = _jinja_env.get_template("banner.html")
    return template.render(
        filename=filename,
        printed_at=printed_at.strftime("%Y-%m-%d %H:%M:%S"),
        total_pages=total_pages,
        width_pt=round(width_pt, 2),
        height_pt=round(height_pt, 2),
    )


def add_banner_pages(src: Path, dest: Path, printed_at: datetime = None) -> Path:
    """
    Write a copy of src to dest with a banner page before and after the
    original pages. The banner uses the first page's size.

    Returns:
        dest
    """
    import fitz
    from weasyprint import HTML

    printed_at = printed_at or datetime.now()

    with fitz.open(str(src)) as source:
        total_pages = source.page_count
        if total_pages == 0:
            raise ValueError(f"{src.name} has no pages")
        rect = source[0].rect

        html = render_banner_html(src.name, printed_at, total_pages, rect.width, rect.height)
        banner_bytes = HTML(string=html).write_pdf()

        with fitz.open(stream=banner_bytes, filetype="pdf") as banner, fitz.open() as out:
            out.insert_pdf(banner, from_page=0, to_page=0)
            out.insert_pdf(source)
            out.insert_pdf(banner, from_page=0, to_page=0)
            out.save(str(dest))

    logger.debug(f"Added banner pages to {src.name} ({total_pages} page(s))")
    return dest
