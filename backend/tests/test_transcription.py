from hint_engine.transcript import Speaker, TranscriptEvent, TranscriptionMerger


def test_final_result_appends_labeled_line_and_clears_interim():
    merger = TranscriptionMerger()

    merger.process_result("how would", is_final=False)
    state = merger.process_result("  How would you design a cache?  ", is_final=True)

    assert state.finalized_text == "Interviewer: How would you design a cache?"
    assert state.interim_text == ""
    assert state.has_interim is False


def test_partial_results_replace_each_other():
    merger = TranscriptionMerger()
    merger.process_result("Tell me about yourself", is_final=True, speaker=Speaker.OTHER)

    merger.process_result("I", is_final=False, speaker=Speaker.SELF)
    merger.process_result("I have been", is_final=False, speaker=Speaker.SELF)
    state = merger.process_result("I have been working", is_final=False, speaker=Speaker.SELF)

    assert state.interim_text == "I have been working"
    assert state.finalized_text == "Interviewer: Tell me about yourself"
    assert state.display_text == "Interviewer: Tell me about yourself\nI have been working"


def test_speaker_labels_and_newline_join():
    merger = TranscriptionMerger()
    merger.process_result("What is a hash map?", is_final=True, speaker="other")
    merger.process_result("A key value store", is_final=True, speaker="self")

    assert merger.get_text() == "Interviewer: What is a hash map?\nYou: A key value store"


def test_finalized_text_never_shrinks_until_clear():
    merger = TranscriptionMerger()
    lengths = []
    for index, text in enumerate(["first", "", "second", "   ", "third"]):
        merger.process_result(f"partial {index}", is_final=False)
        state = merger.process_result(text, is_final=True)
        lengths.append(len(state.finalized_text))

    assert lengths == sorted(lengths)
    assert merger.get_text().count("\n") == 2

    merger.clear()
    state = merger.get_state()
    assert state.finalized_text == ""
    assert state.interim_text == ""


def test_process_event_uses_event_fields():
    merger = TranscriptionMerger()
    state = merger.process_event(TranscriptEvent(text="Sounds good", is_final=True, speaker=Speaker.SELF))

    assert state.finalized_text == "You: Sounds good"
    assert state.to_dict()["displayText"] == "You: Sounds good"


def test_restore_seeds_finalized_text():
    merger = TranscriptionMerger()
    merger.process_result("partial", is_final=False)
    merger.restore("Interviewer: Before the pause")

    state = merger.process_result("After the pause", is_final=True)
    assert state.finalized_text == "Interviewer: Before the pause\nInterviewer: After the pause"
