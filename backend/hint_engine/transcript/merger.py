from hint_engine.transcript.models import (
    SPEAKER_LABELS,
    Speaker,
    TranscriptEvent,
    TranscriptionState,
    parse_speaker,
)


class TranscriptionMerger:
    """
    Holds the display transcript for ONE session.

    Final results are appended as labeled lines and never rewritten.
    Partial results replace each other until the next final arrives.
    """

    def __init__(self):
        self.finalized_text: str = ""
        self.interim_text: str = ""

    # -------------------------
    # INPUT
    # -------------------------

    def process_result(
        self,
        text: str,
        is_final: bool,
        confidence: float = 0.9,
        speaker: Speaker | str = Speaker.OTHER,
    ) -> TranscriptionState:
        clean = str(text or "").strip()

        if is_final:
            if clean:
                label = SPEAKER_LABELS[parse_speaker(speaker)]
                line = f"{label}: {clean}"
                if self.finalized_text:
                    self.finalized_text += "\n" + line
                else:
                    self.finalized_text = line
            self.interim_text = ""
        else:
            # last write wins
            self.interim_text = clean

        return self.get_state()

    def process_event(self, event: TranscriptEvent) -> TranscriptionState:
        return self.process_result(
            event.text,
            event.is_final,
            confidence=event.confidence,
            speaker=event.speaker,
        )

    # -------------------------
    # OUTPUT
    # -------------------------

    def get_state(self) -> TranscriptionState:
        return TranscriptionState(
            finalized_text=self.finalized_text,
            interim_text=self.interim_text,
        )

    def get_text(self) -> str:
        return self.finalized_text

    def restore(self, finalized_text: str) -> None:
        """Seed the buffer with text captured before a pause."""
        self.finalized_text = str(finalized_text or "")
        self.interim_text = ""

    def clear(self) -> None:
        self.finalized_text = ""
        self.interim_text = ""
