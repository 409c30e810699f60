# Presentation module: HTML tab views and Markdown export
from .export import build_markdown_report, encode_markdown_report, export_filename
from .render import render_matrix_table, render_paragraphs, render_tab

__all__ = [
    "build_markdown_report",
    "encode_markdown_report",
    "export_filename",
    "render_matrix_table",
    "render_paragraphs",
    "render_tab",
]
