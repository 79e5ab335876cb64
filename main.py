# main.py

from prompt_toolkit import Application
from prompt_toolkit.history import FileHistory

import argparse
import asyncio
import datetime
import logging
import os
import sys
from typing import Optional

from plainterm import config_handler
from plainterm.errors import LaunchError
from plainterm.input_coordinator import InputCoordinator
from plainterm.shell_session import ShellSession
from plainterm.transcript import Transcript
from plainterm.ui_manager import UIManager

LOG_DIR = "logs"
CONFIG_DIR = "config"
HISTORY_FILENAME = ".plainterm_history"

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
LOG_FILE = os.path.join(SCRIPT_DIR, LOG_DIR, "plainterm.log")
HISTORY_FILE_PATH = os.path.join(SCRIPT_DIR, HISTORY_FILENAME)

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = LOG_FILE):
    """Logs go to a file; the terminal belongs to the UI."""
    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
        handlers=[logging.FileHandler(log_file)]
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="plainterm", description="An embedded shell session with a clean transcript.")
    parser.add_argument("--shell", help="Shell executable to run (default: bash, falling back to /bin/sh).")
    parser.add_argument("--cwd", help="Directory to start the shell in.")
    parser.add_argument("--config-dir", default=os.path.join(SCRIPT_DIR, CONFIG_DIR),
                        help="Directory holding default_config.json and user_config.json.")
    return parser.parse_args(argv)


def apply_cli_overrides(config: dict, args: argparse.Namespace) -> dict:
    overrides = {}
    if args.shell:
        # A different shell gets its own no-rc flags unless the config names some.
        overrides['executable'] = args.shell
        overrides['arguments'] = None
    if args.cwd:
        overrides['launch_directory'] = os.path.abspath(os.path.expanduser(args.cwd))
    if not overrides:
        return config
    logger.info(f"Applying command line overrides: {overrides}")
    return config_handler.merge_configs(config, {'shell': overrides})


async def start_session(session: ShellSession, ui_manager: UIManager) -> bool:
    """Starts the shell. A launch failure is shown in the UI and the app keeps running."""
    try:
        await session.start()
        return True
    except LaunchError as e:
        logger.error(f"Session failed to start: {e}")
        ui_manager.show_notice(f"❌ {e}", style_class='error')
        return False


async def main_async_runner(config: dict):
    """ Main asynchronous runner for the application. """
    transcript = Transcript()
    ui_manager = UIManager(config)

    def _report_session_error(error):
        ui_manager.show_notice(f"⚠️ {error}", style_class='warning')

    session = ShellSession(config, transcript, error_handler=_report_session_error)
    coordinator = InputCoordinator(session,
                                   candidate_sink=ui_manager.show_candidates,
                                   notice_sink=ui_manager.show_notice)
    ui_manager.session = session
    ui_manager.coordinator = coordinator
    transcript.subscribe(ui_manager.on_transcript_entry)

    layout = ui_manager.initialize_ui_elements(history=FileHistory(HISTORY_FILE_PATH))

    enable_mouse = config.get("ui", {}).get("enable_mouse_support", False)
    app_instance = Application(
        layout=layout,
        key_bindings=ui_manager.get_key_bindings(),
        style=ui_manager.style,
        full_screen=True,
        mouse_support=enable_mouse
    )
    ui_manager.app = app_instance

    await start_session(session, ui_manager)
    try:
        logger.info("plainterm application starting.")
        await app_instance.run_async()
    finally:
        session.stop()
        await session.wait_stopped()
    logger.info("plainterm application run_async completed.")


def run_shell(argv=None) -> int:
    """ Main entry point to run the shell application. """
    setup_logging()
    logger.info("=" * 80)
    logger.info("  plainterm Session Started")
    logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 80)

    args = parse_args(argv)
    exit_code = 0
    try:
        config = config_handler.load_configuration(args.config_dir)
        level_name = config.get("logging", {}).get("level", "DEBUG")
        logging.getLogger().setLevel(getattr(logging, str(level_name).upper(), logging.DEBUG))
        config = apply_cli_overrides(config, args)
        asyncio.run(main_async_runner(config))
    except FileNotFoundError as e:
        print(f"\nFATAL STARTUP ERROR: {e}")
        print(f"Please ensure '{os.path.join(args.config_dir, config_handler.DEFAULT_CONFIG_FILENAME)}' exists and is valid JSON.")
        logger.critical(f"Application halting due to fatal configuration error: {e}")
        exit_code = 1
    except (EOFError, KeyboardInterrupt):
        print("\nExiting plainterm. 👋"); logger.info("Exiting due to EOF or KeyboardInterrupt at run_shell level.")
    except Exception as e:
        print(f"\nUnexpected critical error: {e}. Check logs at {LOG_FILE}")
        logger.critical("Critical error in run_shell or main_async_runner", exc_info=True)
        exit_code = 1
    finally:
        logger.info("=" * 80)
        logger.info("  plainterm Session Ended")
        logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 80)
        logging.shutdown()
    return exit_code


def main(argv: Optional[list] = None):
    sys.exit(run_shell(argv))


if __name__ == "__main__":
    main()
