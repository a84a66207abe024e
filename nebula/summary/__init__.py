"""Rolling summary generation."""

from .base import AbstractSummarizationService, SummaryMetadata
from .template import TemplateSummarizationService
from .scheduler import SummaryScheduler

__all__ = [
    "AbstractSummarizationService",
    "SummaryMetadata",
    "TemplateSummarizationService",
    "SummaryScheduler",
]
