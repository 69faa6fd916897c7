from hint_engine.transcript.merger import TranscriptionMerger
from hint_engine.transcript.models import Speaker, TranscriptEvent, TranscriptionState

__all__ = ["Speaker", "TranscriptEvent", "TranscriptionMerger", "TranscriptionState"]
