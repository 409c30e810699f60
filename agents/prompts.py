# Fixed instructions and structured-output schemas sent to the model

from agents.schemas import ArticleAnalysis

ARTICLE_FIELDS = ("title", "authors", "year", "problem", "methodology", "findings", "critique")
SYNTHESIS_FIELDS = ("matrix", "narrative", "conflicts")

ARTICLE_ANALYSIS_PROMPT = """Analise este artigo acadêmico rigorosamente e extraia as seguintes informações em Português:
1. Título do Artigo
2. Autores
3. Ano de Publicação
4. Problema/Lacuna (O que o artigo busca resolver?)
5. Metodologia (Desenho, amostra, métodos)
6. Achados Principais (Resultados diretos e significância)
7. Crítica (Breve avaliação da robustez do estudo)

Retorne os dados estritamente no formato JSON solicitado."""

ARTICLE_ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {name: {"type": "STRING"} for name in ARTICLE_FIELDS},
    "required": list(ARTICLE_FIELDS),
}

SYNTHESIS_PROMPT_TEMPLATE = """Com base nas análises individuais abaixo de vários artigos acadêmicos, gere:
1. Uma MATRIZ DE SÍNTESE COMPARATIVA em formato de Tabela Markdown com as colunas: [Artigo (Título Curto)] | [Objetivo] | [Metodologia] | [Principais Resultados] | [Limitações/Gaps].
2. Uma SÍNTESE NARRATIVA consolidando o conhecimento da área.
3. Uma seção de CONFLITOS E DIVERGÊNCIAS, identificando onde os autores concordam e onde há discordâncias teóricas ou metodológicas.

Mantenha um tom acadêmico rigoroso e use Idioma Português.

ANÁLISES:
{analyses}"""

SYNTHESIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "matrix": {"type": "STRING", "description": "Tabela Markdown da matriz"},
        "narrative": {"type": "STRING", "description": "Texto da síntese narrativa"},
        "conflicts": {"type": "STRING", "description": "Texto sobre conflitos e divergências"},
    },
    "required": list(SYNTHESIS_FIELDS),
}


def format_analysis_block(index: int, analysis: ArticleAnalysis) -> str:
    """Compact text block for one article (1-based index)."""
    return (
        f"Artigo {index}:\n"
        f"Título: {analysis.title}\n"
        f"Objetivo/Problema: {analysis.problem}\n"
        f"Metodologia: {analysis.methodology}\n"
        f"Resultados: {analysis.findings}\n"
        f"Crítica: {analysis.critique}"
    )


def build_synthesis_prompt(analyses: list[ArticleAnalysis]) -> str:
    blocks = "\n\n".join(
        format_analysis_block(i, analysis) for i, analysis in enumerate(analyses, start=1)
    )
    return SYNTHESIS_PROMPT_TEMPLATE.format(analyses=blocks)
