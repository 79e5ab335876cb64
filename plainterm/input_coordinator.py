# plainterm/input_coordinator.py

import logging
from typing import Callable, Optional, Sequence

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document

from plainterm.completion_engine import Ambiguous, CommonPrefix, CompletionResult, NoMatch, Unique, complete
from plainterm.errors import PlainTermError

logger = logging.getLogger(__name__)


class InputCoordinator:
    """Routes the completion and commit keys for the input line.

    The coordinator owns the edit buffer. Ordinary editing keys never reach
    it; prompt_toolkit handles those directly on the buffer.
    """
    def __init__(self, session, buffer: Optional[Buffer] = None,
                 candidate_sink: Optional[Callable[[Sequence[str]], None]] = None,
                 notice_sink: Optional[Callable[..., None]] = None,
                 completer: Callable[[str, str], CompletionResult] = complete):
        """
        Args:
            session: The ShellSession commands are sent to.
            buffer: The edit buffer. A fresh one is created when omitted.
            candidate_sink: Receives the candidate names of an ambiguous completion.
            notice_sink: Receives (message, style_class=...) for errors worth showing.
            completer: The completion function, `complete` by default.
        """
        self.session = session
        self.buffer = buffer if buffer is not None else Buffer()
        self.candidate_sink = candidate_sink
        self.notice_sink = notice_sink
        self.completer = completer
        self.commit_in_flight = False

    def handle_completion(self) -> CompletionResult:
        text = self.buffer.text
        result = self.completer(text, self.session.current_directory)
        logger.debug(f"Completion for '{text}': {result!r}")

        if isinstance(result, (Unique, CommonPrefix)):
            self.buffer.set_document(Document(result.text, cursor_position=len(result.text)))
        elif isinstance(result, Ambiguous):
            if self.candidate_sink:
                self.candidate_sink(result.candidates)
        # NoMatch: nothing to do.
        return result

    async def commit(self) -> bool:
        """Sends the buffer to the shell and clears it.

        Returns False when a previous commit is still in flight; the buffer is
        left alone in that case.
        """
        if self.commit_in_flight:
            logger.info("Commit rejected: previous commit still in flight.")
            return False

        self.commit_in_flight = True
        command = self.buffer.text
        # Cleared before the send, so typing during a slow write is kept.
        self.buffer.reset(append_to_history=bool(command))
        try:
            await self.session.send(command)
        except PlainTermError as e:
            logger.error(f"Sending '{command}' failed: {e}")
            self._notify(f"❌ {e}", style_class='error')
        finally:
            self.commit_in_flight = False
        return True

    def _notify(self, message: str, style_class: str = 'info'):
        if self.notice_sink:
            self.notice_sink(message, style_class=style_class)
