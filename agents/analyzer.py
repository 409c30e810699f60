# Article Analyzer Agent
# Role: Sends one PDF to the model and turns the structured answer into an ArticleAnalysis

from uuid import uuid4

from pydantic import ValidationError

from agents.base import BaseAgent
from agents.encoder import encode_document
from agents.errors import AnalysisError, ProcessingError, ResponseParseError
from agents.llm.base import InlineDocument
from agents.prompts import ARTICLE_ANALYSIS_PROMPT, ARTICLE_ANALYSIS_SCHEMA
from agents.schemas import ArticleAnalysis, ArticleFields
from agents.state import UploadedDocument


class ArticleAnalyzerAgent(BaseAgent):
    """
    Analysis requestor: one document in, one ArticleAnalysis out.

    Any failure (reading, transport, empty or nonconforming response) is
    raised as a single AnalysisError; no partial record is ever produced.
    """

    def __init__(self, llm_client):
        super().__init__(llm_client, name="analyzer")

    def analyze(self, document: UploadedDocument) -> ArticleAnalysis:
        try:
            if not document.is_pdf:
                raise ProcessingError(f"Unsupported media type '{document.media_type}'")

            payload = encode_document(document)
            data = self._call_llm(
                ARTICLE_ANALYSIS_PROMPT,
                ARTICLE_ANALYSIS_SCHEMA,
                documents=[InlineDocument(mime_type=document.media_type, data=payload)],
                task_type="article_analysis",
            )
            fields = self._validate(data)

        except ProcessingError as e:
            raise AnalysisError(document.name, e) from e
        except Exception as e:
            self.logger.error(f"Unexpected error analyzing '{document.name}'", exc_info=True)
            raise AnalysisError(document.name, e) from e

        analysis = ArticleAnalysis(
            id=uuid4().hex,
            filename=document.name,
            **fields.model_dump(),
        )
        self.logger.info(f"Analyzed '{document.name}': {analysis.title[:60]}")
        return analysis

    @staticmethod
    def _validate(data: dict) -> ArticleFields:
        try:
            return ArticleFields.model_validate(data)
        except ValidationError as e:
            raise ResponseParseError(f"Analysis response does not match schema: {e}") from e
