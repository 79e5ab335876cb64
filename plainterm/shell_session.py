# --- API DOCUMENTATION for plainterm/shell_session.py ---
#
# **Purpose:** Owns the embedded child shell: spawns it with a quiet, pinned
# environment, writes user commands to its stdin, and turns whatever it prints
# into sanitized transcript entries as the output arrives.
#
# **Public Classes:**
#
# class ShellSession:
#     """One child shell and its pipes. NOT_STARTED -> RUNNING -> STOPPED."""
#
#     def __init__(self, config, transcript, error_handler=None):
#         """
#         Args:
#             config (dict): The application configuration ('shell', 'transcript', 'timeouts').
#             transcript (Transcript): Sink for command echoes and output blocks.
#             error_handler (callable): Optional. Receives PlainTermError instances
#                                       raised on the background output path.
#         """
#
#     async def start(self):
#         """Spawns the shell and sends the init command. Raises LaunchError."""
#
#     async def send(self, command: str):
#         """Echoes `command` to the transcript, then writes and flushes it. Raises WriteError."""
#
#     def stop(self):
#         """Interrupts the shell and releases its pipes. Idempotent, never raises."""
#
#     async def wait_stopped(self, timeout: float = None) -> Optional[int]:
#         """Waits for the child to exit after stop(), killing it on timeout."""
#
#     def handle_output_chunk(self, raw: bytes):
#         """Decodes, sanitizes and appends one chunk of output."""
#
# **Key Global Constants/Variables:**
#   DEFAULT_INIT_COMMAND, NO_RC_ARGUMENTS, READ_CHUNK_SIZE
#
# --- END API DOCUMENTATION ---

import asyncio
import logging
import os
import shutil
import signal
from enum import Enum, auto
from typing import Callable, List, Optional

from plainterm.errors import LaunchError, PlainTermError, ReadDecodeError, SessionStateError, WriteError
from plainterm.output_sanitizer import DEFAULT_OUTPUT_MARKER, sanitize_output
from plainterm.transcript import EntryKind, Transcript

logger = logging.getLogger(__name__)

DEFAULT_INIT_COMMAND = "export PS1='$ ' && clear"
DEFAULT_COMMAND_MARKER = "$ "
DEFAULT_LOCALE = "C.UTF-8"
DEFAULT_STOP_GRACE_SECONDS = 2.0
READ_CHUNK_SIZE = 4096

# Flags that keep each shell from sourcing rc files on startup.
NO_RC_ARGUMENTS = {
    "bash": ["--norc", "--noprofile"],
    "zsh": ["--no-rcs"],
}

# Taken from the host so commands still resolve; everything else is pinned.
INHERITED_VARIABLES = ("PATH", "HOME", "USER", "LOGNAME", "TMPDIR")


class SessionState(Enum):
    NOT_STARTED = auto()
    RUNNING = auto()
    STOPPED = auto()


def resolve_shell(executable: Optional[str] = None) -> str:
    """Finds the shell binary. Falls back to /bin/sh when bash is not installed."""
    if executable:
        return shutil.which(executable) or executable
    return shutil.which("bash") or "/bin/sh"


def default_shell_arguments(shell_path: str) -> List[str]:
    return list(NO_RC_ARGUMENTS.get(os.path.basename(shell_path), []))


def build_shell_environment(locale: str = DEFAULT_LOCALE, base_env: Optional[dict] = None) -> dict:
    """The child's environment: no prompt, no colour, no pager, dumb terminal, fixed locale."""
    base_env = os.environ if base_env is None else base_env
    env = {key: base_env[key] for key in INHERITED_VARIABLES if key in base_env}
    env.update({
        "PS1": "",
        "TERM": "dumb",
        "CLICOLOR": "0",
        "NO_COLOR": "1",
        "PAGER": "cat",
        "GIT_PAGER": "cat",
        "LANG": locale,
        "LC_ALL": locale,
    })
    return env


class ShellSession:
    def __init__(self, config: dict, transcript: Transcript,
                 error_handler: Optional[Callable[[PlainTermError], None]] = None):
        shell_config = config.get('shell', {})
        self.shell = resolve_shell(shell_config.get('executable'))
        configured_args = shell_config.get('arguments')
        self.arguments = list(configured_args) if configured_args is not None else default_shell_arguments(self.shell)
        self.init_command = shell_config.get('init_command', DEFAULT_INIT_COMMAND)
        self.locale = shell_config.get('locale', DEFAULT_LOCALE)
        self.launch_directory = shell_config.get('launch_directory') or os.getcwd()

        transcript_config = config.get('transcript', {})
        self.output_marker = transcript_config.get('output_marker', DEFAULT_OUTPUT_MARKER)
        self.command_marker = transcript_config.get('command_marker', DEFAULT_COMMAND_MARKER)
        self.stop_grace_seconds = config.get('timeouts', {}).get('stop_grace_seconds', DEFAULT_STOP_GRACE_SECONDS)

        self.transcript = transcript
        self.error_handler = error_handler

        self.state = SessionState.NOT_STARTED
        self.degraded = False
        self.process: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional[asyncio.Task] = None

        logger.info(f"ShellSession initialized. Shell: {self.shell} {' '.join(self.arguments)}, cwd: {self.launch_directory}")

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    @property
    def current_directory(self) -> str:
        """The child's working directory, so 'cd' inside the shell is followed."""
        if self.process and self.process.returncode is None:
            try:
                return os.readlink(f"/proc/{self.process.pid}/cwd")
            except OSError:
                pass
        return self.launch_directory

    async def start(self):
        if self.state is not SessionState.NOT_STARTED:
            raise SessionStateError(f"Cannot start a session that is {self.state.name}.")

        logger.info(f"Starting shell: {self.shell} {' '.join(self.arguments)}")
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.shell, *self.arguments,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.launch_directory,
                env=build_shell_environment(self.locale),
                # No controlling terminal: programs that open /dev/tty must not draw over the UI.
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to launch shell '{self.shell}': {e}", exc_info=True)
            raise LaunchError(f"Could not start shell '{self.shell}': {e}") from e

        if self.state is SessionState.STOPPED:
            # stop() ran while the spawn was pending and saw no process to interrupt.
            logger.info(f"Session stopped during launch; interrupting PID {self.process.pid}.")
            self._interrupt_process()
            return

        self.state = SessionState.RUNNING
        logger.info(f"Shell running with PID {self.process.pid}")
        self._reader_task = asyncio.create_task(self._read_output(self.process.stdout))

        if self.init_command:
            try:
                await self.send(self.init_command)
            except WriteError as e:
                logger.error(f"Init command could not be written: {e}")
                self._report(e)

    async def send(self, command: str):
        if not command:
            return
        if self.state is not SessionState.RUNNING:
            logger.warning(f"send() ignored, session is {self.state.name}: '{command}'")
            raise SessionStateError(f"Cannot send to a session that is {self.state.name}.")

        # Echo first, before any await, so it always precedes the output it causes.
        self.transcript.append(EntryKind.COMMAND_ECHO, f"{self.command_marker}{command}\n")
        logger.info(f"Sending command: '{command}'")

        stdin = self.process.stdin
        try:
            stdin.write((command + "\n").encode("utf-8"))
            await stdin.drain()
        except OSError as e:
            self.degraded = True
            logger.error(f"Write to shell stdin failed, session degraded: {e}")
            raise WriteError(f"Could not write to the shell: {e}") from e

    def stop(self):
        if self.state is SessionState.STOPPED:
            return
        previous_state = self.state
        self.state = SessionState.STOPPED
        logger.info(f"Stopping session (was {previous_state.name}).")

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()

        self._interrupt_process()

    def _interrupt_process(self):
        if not self.process:
            return
        if self.process.returncode is None:
            try:
                self.process.send_signal(signal.SIGINT)
            except OSError as e:
                logger.debug(f"SIGINT not delivered: {e}")
        if self.process.stdin:
            try:
                self.process.stdin.close()
            except OSError as e:
                logger.debug(f"Closing shell stdin failed: {e}")

    async def wait_stopped(self, timeout: Optional[float] = None) -> Optional[int]:
        """Call after stop(). Returns the child's exit code, or None if it never started."""
        if not self.process:
            return None

        timeout = self.stop_grace_seconds if timeout is None else timeout
        try:
            returncode = await asyncio.wait_for(self.process.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Shell PID {self.process.pid} did not exit within {timeout}s, killing it.")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
            returncode = await self.process.wait()

        if self._reader_task:
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        logger.info(f"Shell exited with code {returncode}.")
        return returncode

    def handle_output_chunk(self, raw: bytes):
        if self.state is not SessionState.RUNNING:
            logger.debug(f"Dropping {len(raw)} bytes of output received while {self.state.name}.")
            return
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            error = ReadDecodeError(f"Dropped undecodable output chunk ({len(raw)} bytes): {e}", raw)
            logger.warning(str(error))
            self._report(error)
            return

        block = sanitize_output(text, self.output_marker)
        if block:
            self.transcript.append(EntryKind.OUTPUT_BLOCK, block)

    async def _read_output(self, reader: asyncio.StreamReader):
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self.handle_output_chunk(chunk)
        logger.info("Shell output reached EOF.")

    def _report(self, error: PlainTermError):
        if not self.error_handler:
            return
        try:
            self.error_handler(error)
        except Exception as e:
            logger.error(f"Error handler raised while reporting {error!r}: {e}", exc_info=True)
