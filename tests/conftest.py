# Pytest Configuration and Shared Fixtures
# Common test fixtures and configuration for the test suite

import os
import sys

# Keep tests away from any real credentials in the environment or a local .env
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["SESSION_IDLE_TTL"] = "3600"

# Add the backend directory to the Python path for test imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import threading
from typing import Any

import pytest

from agents.llm.base import BaseLLMClient
from agents.schemas import ArticleAnalysis, SynthesisReport
from agents.state import PDF_MEDIA_TYPE, UploadedDocument

# Configure pytest-asyncio
pytest_plugins = ['pytest_asyncio']


# ============================================
# Sample data helpers
# ============================================

def analysis_payload(title: str, **overrides) -> dict[str, str]:
    """A well-formed structured response for one article."""
    payload = {
        "title": title,
        "authors": f"Autor de {title}",
        "year": "2023",
        "problem": f"Problema de {title}",
        "methodology": f"Metodologia de {title}",
        "findings": f"Achados de {title}",
        "critique": f"Crítica de {title}",
    }
    payload.update(overrides)
    return payload


SYNTHESIS_PAYLOAD = {
    "matrix": (
        "| Artigo | Objetivo | Metodologia | Resultados | Limitações |\n"
        "|---|---|---|---|---|\n"
        "| A | obj A | met A | res A | lim A |\n"
        "| B | obj B | met B | res B | lim B |"
    ),
    "narrative": "Primeiro parágrafo.\nSegundo parágrafo.",
    "conflicts": "Os autores divergem quanto ao método.",
}


def make_pdf(name: str = "artigo.pdf", content: bytes = b"%PDF-1.4 test") -> UploadedDocument:
    return UploadedDocument(name=name, media_type=PDF_MEDIA_TYPE, content=content)


def make_analysis(title: str, filename: str | None = None) -> ArticleAnalysis:
    return ArticleAnalysis(
        id=f"id-{title}",
        filename=filename or f"{title}.pdf",
        **analysis_payload(title),
    )


# ============================================
# LLM Client fixtures
# ============================================

class ScriptedLLMClient(BaseLLMClient):
    """
    In-memory stand-in for the Gemini client.

    Analysis calls consume ``analyses`` in order; synthesis calls return
    ``synthesis``. An entry that is an exception instance is raised instead.
    When ``hold`` is set, each analysis call signals ``entered`` and waits
    for ``release`` before answering.
    """

    def __init__(self, analyses=None, synthesis=None, hold: bool = False):
        self.analyses = list(analyses or [])
        self.synthesis = synthesis if synthesis is not None else dict(SYNTHESIS_PAYLOAD)
        self.hold = hold
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls: list[dict[str, Any]] = []
        super().__init__()

    def _setup_client(self) -> None:
        pass

    def get_provider_name(self) -> str:
        return "scripted"

    def is_available(self) -> bool:
        return True

    def generate_structured(self, prompt, response_schema, documents=None, task_type="general"):
        self.calls.append({
            "prompt": prompt,
            "schema": response_schema,
            "documents": list(documents or []),
            "task_type": task_type,
        })

        if task_type == "synthesis":
            result = self.synthesis
        else:
            if self.hold:
                self.entered.set()
                self.release.wait(timeout=5)
            result = self.analyses.pop(0)

        if isinstance(result, Exception):
            raise result
        return result

    def calls_for(self, task_type: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["task_type"] == task_type]


@pytest.fixture
def scripted_client():
    """Client answering two articles, A and B, and a well-formed synthesis."""
    return ScriptedLLMClient(analyses=[analysis_payload("A"), analysis_payload("B")])


@pytest.fixture
def two_pdfs():
    return [make_pdf("a.pdf", b"%PDF-1.4 A"), make_pdf("b.pdf", b"%PDF-1.4 B")]


@pytest.fixture
def sample_report():
    """A completed report over articles A and B."""
    return SynthesisReport(
        analyses=(make_analysis("A", "a.pdf"), make_analysis("B", "b.pdf")),
        matrix_markdown=SYNTHESIS_PAYLOAD["matrix"],
        narrative_synthesis=SYNTHESIS_PAYLOAD["narrative"],
        conflicts=SYNTHESIS_PAYLOAD["conflicts"],
    )


# Markers for different test categories
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
