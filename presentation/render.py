# HTML views over a completed SynthesisReport
# One function per result tab; all cell and field text is HTML-escaped

import re
from html import escape

from agents.schemas import ArticleAnalysis, SynthesisReport
from agents.state import ResultTab

TABLE_UNAVAILABLE = '<p class="table-unavailable">Tabela não disponível.</p>'

# A header-divider cell: dashes with optional alignment colons, e.g. "---", ":--:", "--:"
_DIVIDER_CELL = re.compile(r"^:?-+:?$")
# A pipe that is not escaped as "\|"
_CELL_SEPARATOR = re.compile(r"(?<!\\)\|")


def split_table_row(line: str) -> list[str]:
    """Split one Markdown table row into stripped cells, ignoring the outer pipes."""
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|") and not row.endswith("\\|"):
        row = row[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _CELL_SEPARATOR.split(row)]


def is_divider_row(cells: list[str]) -> bool:
    """True for a header-divider row: every cell is made only of dashes and colons."""
    return bool(cells) and all(_DIVIDER_CELL.match(cell.replace(" ", "")) for cell in cells)


def parse_markdown_table(markdown: str) -> list[list[str]]:
    """
    Parse a Markdown table into rows of cells, header first.

    Divider rows are dropped. Data rows are padded or truncated to the
    header width.
    """
    rows = [
        split_table_row(line)
        for line in markdown.strip().splitlines()
        if "|" in line
    ]
    rows = [cells for cells in rows if not is_divider_row(cells)]
    if not rows:
        return []

    width = len(rows[0])
    return [rows[0]] + [(cells + [""] * width)[:width] for cells in rows[1:]]


def render_matrix_table(markdown: str) -> str:
    """Render the comparative matrix as an HTML table, or the unavailable placeholder."""
    rows = parse_markdown_table(markdown or "")
    if len(rows) < 2:
        return TABLE_UNAVAILABLE

    header = "".join(f"<th>{escape(cell)}</th>" for cell in rows[0])
    body = "".join(
        "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in cells) + "</tr>"
        for cells in rows[1:]
    )
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>"


def render_paragraphs(text: str) -> str:
    """One <p> per newline-delimited line."""
    return "".join(f"<p>{escape(line)}</p>" for line in (text or "").split("\n"))


def _render_article(index: int, analysis: ArticleAnalysis) -> str:
    sections = (
        ("Problema / Lacuna", analysis.problem),
        ("Metodologia", analysis.methodology),
        ("Achados Principais", analysis.findings),
        ("Crítica Técnica", analysis.critique),
    )
    body = "".join(
        f'<section><h4>{label}</h4><p>{escape(value)}</p></section>' for label, value in sections
    )
    return (
        f'<article id="{escape(analysis.id)}">'
        f'<span class="badge">Artigo {index}</span>'
        f"<h3>{escape(analysis.title)}</h3>"
        f'<div class="meta">'
        f'<span class="authors">{escape(analysis.authors)}</span>'
        f'<span class="year">{escape(analysis.year)}</span>'
        f'<span class="filename">{escape(analysis.filename)}</span>'
        f"</div>"
        f"{body}"
        f"</article>"
    )


def render_individual(report: SynthesisReport) -> str:
    """One block per analysis, in upload order."""
    return "".join(
        _render_article(i, analysis) for i, analysis in enumerate(report.analyses, start=1)
    )


def render_synthesis(report: SynthesisReport) -> str:
    return (
        "<section><h3>Síntese Narrativa</h3>"
        f"{render_paragraphs(report.narrative_synthesis)}</section>"
        "<section><h3>Conflitos e Divergências</h3>"
        f"{render_paragraphs(report.conflicts)}</section>"
    )


def render_tab(report: SynthesisReport, tab: ResultTab | str) -> str:
    """Render the HTML fragment for one result tab."""
    tab = ResultTab(tab)
    if tab == ResultTab.INDIVIDUAL:
        return render_individual(report)
    if tab == ResultTab.MATRIX:
        return render_matrix_table(report.matrix_markdown)
    return render_synthesis(report)
