# Markdown export of a completed SynthesisReport

from datetime import date

from agents.schemas import SynthesisReport

REPORT_TITLE = "Relatório de Síntese de Evidências Acadêmicas"
EXPORT_MEDIA_TYPE = "text/markdown; charset=utf-8"


def export_filename(day: date | None = None) -> str:
    """``sintese_academica_<YYYY-MM-DD>.md`` for the given (default: current) day."""
    day = day or date.today()
    return f"sintese_academica_{day.isoformat()}.md"


def build_markdown_report(report: SynthesisReport) -> str:
    """
    Assemble the report document.

    Sections are fixed and numbered: matrix, narrative, conflicts, then one
    block per article in upload order. The output depends only on the report.
    """
    lines = [
        f"# {REPORT_TITLE}\n\n",
        f"## 1. Matriz de Síntese\n\n{report.matrix_markdown}\n\n",
        f"## 2. Síntese Narrativa\n\n{report.narrative_synthesis}\n\n",
        f"## 3. Conflitos e Divergências\n\n{report.conflicts}\n\n",
        "## 4. Análises Individuais\n\n",
    ]

    for i, analysis in enumerate(report.analyses, start=1):
        lines.append(
            f"### Artigo {i}: {analysis.title}\n"
            f"**Autores:** {analysis.authors} ({analysis.year})\n"
            f"**Problema:** {analysis.problem}\n"
            f"**Metodologia:** {analysis.methodology}\n"
            f"**Achados:** {analysis.findings}\n"
            f"**Crítica:** {analysis.critique}\n\n"
        )

    return "".join(lines)


def encode_markdown_report(report: SynthesisReport) -> bytes:
    return build_markdown_report(report).encode("utf-8")
