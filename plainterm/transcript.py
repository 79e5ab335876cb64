# plainterm/transcript.py

import logging
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    """What produced a transcript entry."""
    COMMAND_ECHO = auto()   # A command the user sent, echoed before it is written
    OUTPUT_BLOCK = auto()   # One sanitized chunk of process output


@dataclass(frozen=True)
class TranscriptEntry:
    kind: EntryKind
    text: str
    index: int


class Transcript:
    """
    Ordered, append-only record of command echoes and sanitized output.
    Entries are never reordered, merged or removed once appended.
    Subscribers are called synchronously, in registration order, with each new entry.
    """
    def __init__(self):
        self._entries: List[TranscriptEntry] = []
        self._subscribers: List[Callable[[TranscriptEntry], None]] = []
        self._lock = threading.Lock()

    def append(self, kind: EntryKind, text: str) -> TranscriptEntry:
        with self._lock:
            entry = TranscriptEntry(kind=kind, text=text, index=len(self._entries))
            self._entries.append(entry)
            subscribers = list(self._subscribers)

        logger.debug(f"Transcript: #{entry.index} {kind.name}: {text.rstrip()[:120]}")
        for handler in subscribers:
            try:
                handler(entry)
            except Exception as e:
                logger.error(f"Error in transcript subscriber {handler!r}: {e}", exc_info=True)
        return entry

    def subscribe(self, handler: Callable[[TranscriptEntry], None]) -> Callable[[], None]:
        """Registers `handler` for new entries. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(handler)

        def _unsubscribe():
            with self._lock:
                if handler in self._subscribers:
                    self._subscribers.remove(handler)
        return _unsubscribe

    @property
    def entries(self) -> List[TranscriptEntry]:
        """A snapshot copy of all entries."""
        with self._lock:
            return list(self._entries)

    def text(self) -> str:
        return "".join(entry.text for entry in self.entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
