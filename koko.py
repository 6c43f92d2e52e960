# koko.py
import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from typing import List, Optional

from koko_core.app_config import AppConfig
from koko_core.bridge import JsonLinesBridge
from koko_core.client.headless_driver import HeadlessDriver
from koko_core.client.headless_view import HeadlessView
from koko_core.client.session_controller import SessionController
from koko_core.config_defs import SessionSettings
from koko_core.error_handler import ERROR_TYPE_NORMAL, ErrorHandler
from koko_core.shortcut_manager import ShortcutManager

main_logger = logging.getLogger("koko.main")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _rotating_handler(path: str, level: int, config: AppConfig, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(config: AppConfig):
    """Full log and error log under logs/, warnings echoed to stderr."""
    if not config.log_enabled:
        logging.disable(logging.CRITICAL + 1)
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    log_dir = os.path.join(config.BASE_DIR, "logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
        full_log_path = os.path.join(log_dir, config.log_file)
        error_log_path = os.path.join(log_dir, config.log_error_file)
        root_logger.addHandler(_rotating_handler(full_log_path, config.log_level_int, config, formatter))
        root_logger.addHandler(_rotating_handler(error_log_path, config.log_error_level_int, config, formatter))

        # stdout carries outbound commands
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.WARNING)
        root_logger.addHandler(console_handler)

        logging.getLogger("koko").setLevel(config.log_level_int)
        main_logger.info(f"Logging initialized. Full log: {full_log_path}, Error log: {error_log_path}")
    except OSError as e:
        print(f"Failed to initialize file logging: {e}", file=sys.stderr)
        logging.basicConfig(level=config.log_level_int, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stderr)], force=True)
        main_logger.error(f"File logging setup failed. Using console logging. Error: {e}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="koko headless chat session")
    parser.add_argument("--config", default=None, help="Path to the INI configuration file.")
    parser.add_argument("--root-buffer-name", default=None, help="Name of the root buffer. Overrides config.")
    parser.add_argument("--command-symbol", default=None, help="Single-character command prefix. Overrides config.")
    parser.add_argument("--input", default=None, help="JSON-lines file of events and intents (default: stdin).")
    parser.add_argument("--show-renders", action="store_true", help="Print a summary line to stderr after every state change.")
    parser.add_argument("--no-log", action="store_true", help="Disable logging.")
    return parser.parse_args(argv)


def build_settings(config: AppConfig, args: argparse.Namespace) -> SessionSettings:
    settings = config.session_settings()
    root_buffer_name = args.root_buffer_name or settings.root_buffer_name
    command_symbol = settings.command_symbol
    if args.command_symbol is not None:
        if len(args.command_symbol) == 1 and not args.command_symbol.isspace():
            command_symbol = args.command_symbol
        else:
            main_logger.warning(f"Ignoring --command-symbol {args.command_symbol!r}: must be one character.")
    return SessionSettings(
        root_buffer_name=root_buffer_name,
        command_symbol=command_symbol,
        channel_prefixes=settings.channel_prefixes,
        relabel_history_on_nick=settings.relabel_history_on_nick,
    )


async def run_session(args: argparse.Namespace, config: AppConfig) -> int:
    settings = build_settings(config, args)
    bridge = JsonLinesBridge(sys.stdout)
    error_handler = ErrorHandler(max_notices=config.max_error_notices)
    shortcuts = ShortcutManager()
    controller = SessionController(bridge, error_handler, settings)
    controller.attach(shortcuts)
    error_handler.on(ERROR_TYPE_NORMAL, lambda error: print(f"error: {error['error']}", file=sys.stderr))
    if args.show_renders:
        controller.add_render_listener(HeadlessView(sys.stderr))

    driver = HeadlessDriver(controller, bridge, shortcuts, error_handler)
    if args.input:
        with open(args.input, "r", encoding="utf-8") as stream:
            await driver.run(stream)
    else:
        await driver.run(sys.stdin)
    return 0 if driver.lines_skipped == 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    config = AppConfig(args.config)
    if args.no_log:
        config.log_enabled = False
    setup_logging(config)
    try:
        return asyncio.run(run_session(args, config))
    except KeyboardInterrupt:
        main_logger.info("Interrupted")
        return 130
    except OSError as e:
        main_logger.error(f"Could not read input: {e}")
        print(f"koko: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
