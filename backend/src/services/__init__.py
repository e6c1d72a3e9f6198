"""Service layer for business logic and external integrations."""

from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, init_database
from .journal_service import JournalService
from .prompt_loader import PromptLoader, PromptLoaderError
from .report_normalizer import ReportNormalizer, ReportNormalizerError, get_report_normalizer
from .summary_service import (
    NoChangesProvidedError,
    SectionValidationError,
    SummaryService,
    get_summary_service,
)
from .summary_store import (
    SummaryAlreadyExistsError,
    SummaryError,
    SummaryNotFoundError,
    SummaryStore,
    get_summary_store,
)

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "JournalService",
    "PromptLoader",
    "PromptLoaderError",
    "ReportNormalizer",
    "ReportNormalizerError",
    "get_report_normalizer",
    "SummaryService",
    "get_summary_service",
    "SectionValidationError",
    "NoChangesProvidedError",
    "SummaryStore",
    "get_summary_store",
    "SummaryError",
    "SummaryAlreadyExistsError",
    "SummaryNotFoundError",
]
