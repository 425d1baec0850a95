"""Services for ContextFlow."""

from contextflow.services.chat_service import ChatOrchestrator, apology_message
from contextflow.services.daily_summary import DailySummaryAggregator
from contextflow.services.data_exporter import DataExporter
from contextflow.services.extraction_client import ExtractionClient
from contextflow.services.extractors import ContentExtractor
from contextflow.services.ingestion import IngestionDispatcher, IngestionReport, IngestOutcome
from contextflow.services.insight_generator import InsightGenerator, InsightOutcome
from contextflow.services.ollama_service import OllamaService
from contextflow.services.workspace import Workspace

__all__ = [
    "ChatOrchestrator",
    "ContentExtractor",
    "DailySummaryAggregator",
    "DataExporter",
    "ExtractionClient",
    "IngestOutcome",
    "IngestionDispatcher",
    "IngestionReport",
    "InsightGenerator",
    "InsightOutcome",
    "OllamaService",
    "Workspace",
    "apology_message",
]
