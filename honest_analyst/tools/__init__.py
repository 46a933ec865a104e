from .export_tools import report_to_markdown, write_report_markdown, write_report_pdf
from .web_tools import extract_text_from_html, fetch_url_content, is_url

__all__ = [
    "fetch_url_content",
    "extract_text_from_html",
    "is_url",
    "report_to_markdown",
    "write_report_markdown",
    "write_report_pdf",
]
