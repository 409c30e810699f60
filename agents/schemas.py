from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# Must contain a non-blank character; the value is kept verbatim
RequiredText = Annotated[str, AfterValidator(_require_text)]


# --- Structured-output contracts returned by the model ---


class ArticleFields(BaseModel):
    """The seven fields the model must extract from one article."""

    model_config = ConfigDict(extra="ignore", strict=True)

    title: RequiredText
    authors: RequiredText
    year: RequiredText = Field(description="Free text, not validated as a number")
    problem: RequiredText
    methodology: RequiredText
    findings: RequiredText
    critique: RequiredText


class SynthesisContent(BaseModel):
    """The three artifacts produced by the cross-article synthesis call."""

    model_config = ConfigDict(extra="ignore", strict=True, frozen=True)

    matrix: RequiredText = Field(description="Markdown comparison table")
    narrative: RequiredText
    conflicts: RequiredText


# --- Session records ---


class ArticleAnalysis(ArticleFields):
    """One structured record per processed document. Never mutated after creation."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    id: str
    filename: str


class SynthesisReport(BaseModel):
    """
    The final aggregate of a run.

    Built once after every document was analyzed and the synthesis call
    succeeded; a new run replaces it wholesale.
    """

    model_config = ConfigDict(frozen=True)

    analyses: tuple[ArticleAnalysis, ...]
    matrix_markdown: str
    narrative_synthesis: str
    conflicts: str
