import argparse
import logging
import sys

from nicegui import app as ng_app
from nicegui import ui

from board_explorer.common.logging_config import configure_logging, daemon_output_sink
from board_explorer.constants import (
    ARDUINO_CLI_DOC_URL,
    ARDUINO_CLI_PATH,
    AUTO_START,
    DAEMON_HOST,
    DAEMON_PORT,
    DAEMON_STARTUP_GRACE_S,
    LOG_LEVEL,
    SERVER_HOST,
    SERVER_PORT,
    TRACE,
)
from board_explorer.pages.boards import BoardsPage
from board_explorer.services.process_supervisor import DaemonOptions, ProcessSupervisor
from board_explorer.services.query_service import QueryService
from board_explorer.services.session_channel import ConnectionConfig, SessionChannel
from board_explorer.services.session_manager import SessionManager

# ------------------------ Services ------------------------


def build_services(
    host: str = DAEMON_HOST,
    port: int = DAEMON_PORT,
    cli_path: str = ARDUINO_CLI_PATH,
    auto_start: bool = AUTO_START,
) -> tuple[SessionManager, QueryService]:
    channel = SessionChannel(ConnectionConfig(host=host, port=port))
    supervisor = ProcessSupervisor(DaemonOptions(cli_path=cli_path)) if auto_start else None
    session = SessionManager(
        channel,
        supervisor=supervisor,
        output_sink=daemon_output_sink,
        startup_grace_s=DAEMON_STARTUP_GRACE_S,
    )
    return session, QueryService(session, channel)


session_manager, query_service = build_services()

# ------------------------ Page ------------------------


@ui.page("/")
def index() -> None:
    with ui.header().classes("items-center justify-between"):
        ui.label("Arduino Board Explorer").classes("text-lg")
        ui.button(
            "?",
            on_click=lambda: ui.run_javascript(
                f"window.open('{ARDUINO_CLI_DOC_URL}', '_blank')"
            ),
        ).props("round unelevated")

    BoardsPage(session_manager, query_service).build()


def _shutdown_services() -> None:
    session_manager.shutdown()


ng_app.on_shutdown(_shutdown_services)


if __name__ in {"__main__", "__mp_main__"}:
    # CLI: web bind, daemon target, and log level
    parser = argparse.ArgumentParser(description="Arduino Board Explorer")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument(
        "--port", type=int, default=SERVER_PORT, help="Webserver bind port"
    )
    parser.add_argument(
        "--daemon-host", default=DAEMON_HOST, help="arduino-cli daemon host"
    )
    parser.add_argument(
        "--daemon-port", type=int, default=DAEMON_PORT, help="arduino-cli gRPC port"
    )
    parser.add_argument(
        "--cli-path", default=ARDUINO_CLI_PATH, help="arduino-cli executable"
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Enable WARNING logging"
    )
    parser.add_argument(
        "--disable-auto-start",
        action="store_true",
        help="Connect to an already running daemon instead of launching one "
        "(overrides BOARD_EXPLORER_AUTO_START)",
    )
    args, _ = parser.parse_known_args()

    if args.log_level:
        runtime_log_level = TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    elif args.verbose >= 3:
        runtime_log_level = TRACE
    elif args.verbose == 2:
        runtime_log_level = logging.DEBUG
    elif args.verbose == 1:
        runtime_log_level = logging.INFO
    elif args.quiet:
        runtime_log_level = logging.WARNING
    else:
        runtime_log_level = LOG_LEVEL

    configure_logging(runtime_log_level)

    # Rebuild against the CLI-resolved daemon target
    session_manager.channel.close()
    session_manager, query_service = build_services(
        host=args.daemon_host,
        port=args.daemon_port,
        cli_path=args.cli_path,
        auto_start=AUTO_START and not args.disable_auto_start,
    )
    logging.info(f"Webserver bind: host={args.host} port={args.port}")
    logging.info(f"Daemon target: {args.daemon_host}:{args.daemon_port}")

    ui.run(
        title="Arduino Board Explorer",
        host=args.host,
        port=args.port,
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
    )
