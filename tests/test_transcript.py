# tests/test_transcript.py
import dataclasses
import threading
from unittest.mock import MagicMock

import pytest

from plainterm.transcript import EntryKind, Transcript, TranscriptEntry


def test_append_assigns_increasing_indices():
    transcript = Transcript()
    first = transcript.append(EntryKind.COMMAND_ECHO, "$ ls\n")
    second = transcript.append(EntryKind.OUTPUT_BLOCK, "> a\n")
    assert (first.index, second.index) == (0, 1)
    assert transcript.entries == [first, second]
    assert len(transcript) == 2
    assert transcript.text() == "$ ls\n> a\n"


def test_entries_are_immutable():
    entry = Transcript().append(EntryKind.OUTPUT_BLOCK, "> a\n")
    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.text = "changed"


def test_entries_returns_a_snapshot():
    transcript = Transcript()
    transcript.append(EntryKind.OUTPUT_BLOCK, "> a\n")
    snapshot = transcript.entries
    snapshot.clear()
    assert len(transcript) == 1


def test_subscribers_receive_new_entries_in_order():
    transcript = Transcript()
    received = []
    transcript.subscribe(received.append)
    transcript.append(EntryKind.COMMAND_ECHO, "$ ls\n")
    transcript.append(EntryKind.OUTPUT_BLOCK, "> a\n")
    assert [entry.index for entry in received] == [0, 1]
    assert all(isinstance(entry, TranscriptEntry) for entry in received)


def test_unsubscribe_stops_delivery():
    transcript = Transcript()
    handler = MagicMock()
    unsubscribe = transcript.subscribe(handler)
    transcript.append(EntryKind.OUTPUT_BLOCK, "> a\n")
    unsubscribe()
    unsubscribe()  # second call is harmless
    transcript.append(EntryKind.OUTPUT_BLOCK, "> b\n")
    assert handler.call_count == 1


def test_failing_subscriber_does_not_break_append():
    transcript = Transcript()
    good = MagicMock()
    transcript.subscribe(MagicMock(side_effect=RuntimeError("boom")))
    transcript.subscribe(good)
    entry = transcript.append(EntryKind.OUTPUT_BLOCK, "> a\n")
    good.assert_called_once_with(entry)
    assert len(transcript) == 1


def test_concurrent_appends_are_not_lost():
    transcript = Transcript()

    def writer(tag):
        for i in range(200):
            transcript.append(EntryKind.OUTPUT_BLOCK, f"> {tag}{i}\n")

    threads = [threading.Thread(target=writer, args=(tag,)) for tag in "abcd"]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entries = transcript.entries
    assert len(entries) == 800
    assert [entry.index for entry in entries] == list(range(800))
