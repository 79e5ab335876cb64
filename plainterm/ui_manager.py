# plainterm/ui_manager.py
import logging
import os

from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, VSplit, Window
from prompt_toolkit.widgets import TextArea
from prompt_toolkit.styles import Style
from prompt_toolkit.document import Document
from prompt_toolkit.layout.controls import FormattedTextControl

from plainterm.completion_engine import Ambiguous
from plainterm.file_tree import load_tree, render_tree
from plainterm.transcript import EntryKind, TranscriptEntry


logger = logging.getLogger(__name__)

KEY_HELP_TEXT = "Enter: Run | Tab: Complete path | F2: Files | PgUp/PgDn: Scroll | Ctrl+C/D: Exit"


class UIManager:
    """Owns the prompt_toolkit layout that hosts the embedded shell.

    Renders the transcript in a read-only output field, shows completion
    candidates and error notices in the status bar, and forwards Tab and
    Enter to the InputCoordinator. All other keys are plain buffer editing.
    """
    def __init__(self, config: dict, session=None, coordinator=None):
        """
        Args:
            config: The application configuration.
            session: The ShellSession, used for the prompt and the file panel directory.
            coordinator: The InputCoordinator that Tab and Enter are routed to.
        """
        self.config = config
        self.session = session
        self.coordinator = coordinator
        self.app = None  # Set by main.py
        self.output_field = None
        self.input_field = None
        self.file_panel = None
        self.status_bar = None
        self.root_container = None
        self.layout = None
        self.style = None
        self.output_buffer = []
        self.max_rendered_entries = config.get('ui', {}).get('max_rendered_entries', 500)
        self.file_panel_visible = False
        self.current_prompt_text = "$ "
        self.status_bar_control = FormattedTextControl("")

        self.kb = KeyBindings()
        self._register_keybindings()

        logger.debug("UIManager initialized with config and keybindings.")

    def _register_keybindings(self):
        @self.kb.add('c-c')
        @self.kb.add('c-d')
        def _handle_exit(event):
            logger.info("Exit keybinding triggered.")
            event.app.exit()

        @self.kb.add('enter')
        def _handle_enter(event):
            if not self.coordinator:
                return
            self.update_status_bar("")
            event.app.create_background_task(self.coordinator.commit())

        @self.kb.add('tab')
        def _handle_tab(event):
            if not self.coordinator:
                return
            result = self.coordinator.handle_completion()
            if not isinstance(result, Ambiguous):
                self.update_status_bar("")

        @self.kb.add('f2')
        def _handle_toggle_files(event):
            self.toggle_file_panel()

        @self.kb.add('pageup')
        def _handle_pageup(event):
            if self.output_field and self.output_field.window.render_info:
                self.output_field.window._scroll_up()
                event.app.invalidate()

        @self.kb.add('pagedown')
        def _handle_pagedown(event):
            if self.output_field and self.output_field.window.render_info:
                self.output_field.window._scroll_down()
                event.app.invalidate()

        logger.debug("UIManager: Keybindings registered.")

    def get_key_bindings(self) -> KeyBindings:
        return self.kb

    def _get_current_prompt(self) -> str:
        return self.current_prompt_text

    def initialize_ui_elements(self, history=None) -> Layout:
        """Creates the widgets and returns the application Layout.

        The input field's buffer is handed to the coordinator, which owns it from then on.
        """
        logger.info("UIManager: Initializing UI elements...")
        self.style = Style.from_dict({
            'output-field': 'bg:#1e1e1e #d4d4d4', 'input-field': 'bg:#252526 #d19a66',
            'key-help': 'bg:#1e1e1e #5c6370', 'line': '#3e4451',
            'prompt': 'bg:#252526 #61afef',
            'file-panel': 'bg:#2d2d2d #abb2bf',
            'status-bar': 'bg:#1e1e1e #abb2bf',
            'status-bar.info': 'bg:#1e1e1e #61afef',
            'status-bar.warning': 'bg:#1e1e1e #d19a66',
            'status-bar.error': 'bg:#1e1e1e #e06c75',
            'status-bar.candidates': 'bg:#1e1e1e #c678dd',
        })

        self.output_field = TextArea(
            text="".join(self.output_buffer),
            style='class:output-field', scrollbar=True, focusable=False,
            wrap_lines=True, read_only=True
        )
        input_height = self.config.get('ui', {}).get('input_field_height', 1)
        self.input_field = TextArea(
            prompt=self._get_current_prompt,
            style='class:input-field',
            multiline=False,
            wrap_lines=False, history=history,
            height=input_height
        )
        if self.coordinator:
            self.coordinator.buffer = self.input_field.buffer

        self.file_panel = TextArea(
            text="", style='class:file-panel', focusable=False,
            read_only=True, wrap_lines=False,
            width=self.config.get('ui', {}).get('file_panel_width', 32)
        )
        self.status_bar = Window(content=self.status_bar_control, height=1, style='class:status-bar')

        body = VSplit([
            ConditionalContainer(self.file_panel, filter=Condition(lambda: self.file_panel_visible)),
            self.output_field,
        ])
        self.root_container = HSplit([
            body,
            self.status_bar,
            Window(height=1, char='─', style='class:line'),
            self.input_field,
            Window(content=FormattedTextControl(KEY_HELP_TEXT), height=1, style='class:key-help'),
        ])
        self.layout = Layout(self.root_container, focused_element=self.input_field)
        if self.session:
            self.update_input_prompt(self.session.current_directory)
        logger.info("UIManager: UI elements fully initialized.")
        return self.layout

    def on_transcript_entry(self, entry: TranscriptEntry):
        """Transcript subscriber: renders one new entry."""
        self.output_buffer.append(entry.text)

        # The transcript keeps everything; only the rendered tail is bounded.
        if len(self.output_buffer) > self.max_rendered_entries:
            entries_to_drop = len(self.output_buffer) - self.max_rendered_entries + (self.max_rendered_entries // 10)
            self.output_buffer = self.output_buffer[entries_to_drop:]
            logger.debug(f"Rendered output trimmed. New size: {len(self.output_buffer)} entries.")

        if self.session and entry.kind is EntryKind.OUTPUT_BLOCK:
            self.update_input_prompt(self.session.current_directory)
        self._refresh_output()

    def _refresh_output(self):
        if not self.output_field:
            return
        plain_text_output = "".join(self.output_buffer)
        self.output_field.buffer.set_document(
            Document(plain_text_output, cursor_position=len(plain_text_output)), bypass_readonly=True
        )
        self._invalidate()

    def show_candidates(self, candidates):
        """Candidate sink for ambiguous completions."""
        self.update_status_bar("  ".join(candidates), style='class:status-bar.candidates')

    def show_notice(self, message: str, style_class: str = 'info'):
        """Notice sink for session errors and other one-line messages."""
        logger.info(f"UI_NOTICE: {message}")
        self.update_status_bar(message, style=f'class:status-bar.{style_class}')

    def update_status_bar(self, text: str, style: str = 'class:status-bar'):
        self.status_bar_control.text = text
        if self.status_bar:
            self.status_bar.style = style
        self._invalidate()

    def toggle_file_panel(self):
        self.file_panel_visible = not self.file_panel_visible
        if self.file_panel_visible and self.file_panel:
            directory = self.session.current_directory if self.session else os.getcwd()
            depth = self.config.get('ui', {}).get('file_panel_depth', 2)
            listing = render_tree(load_tree(directory, max_depth=depth))
            self.file_panel.buffer.set_document(Document(listing, cursor_position=0), bypass_readonly=True)
            logger.debug(f"File panel opened for {directory}")
        self._invalidate()

    def update_input_prompt(self, current_directory_path: str):
        """Sets the prompt to the shortened current directory."""
        home_dir = os.path.expanduser("~")
        if current_directory_path == home_dir:
            dir_for_prompt = "~"
        elif current_directory_path.startswith(home_dir + os.sep):
            dir_for_prompt = "~/" + os.path.basename(current_directory_path)
        else:
            dir_for_prompt = os.path.basename(current_directory_path) or current_directory_path
        self.current_prompt_text = f"({dir_for_prompt}) $ "

    def _invalidate(self):
        if self.app and getattr(self.app, 'is_running', False):
            self.app.invalidate()
