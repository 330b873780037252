from __future__ import annotations

import logging

from nicegui import run, ui

from board_explorer.common.logging_config import attach_ui_log
from board_explorer.services.errors import InitError
from board_explorer.services.protocol import BoardDescriptor
from board_explorer.services.query_service import QueryService
from board_explorer.services.session_manager import SessionManager


class BoardsPage:
    """Board list page: one button, the list, and the daemon log."""

    def __init__(self, session: SessionManager, queries: QueryService) -> None:
        self.session = session
        self.queries = queries
        self.board_list: ui.list | None = None
        self.status_label: ui.label | None = None
        self.daemon_log: ui.log | None = None

    async def load_boards(self) -> None:
        """Initialize the session if needed, then list all boards off the event loop."""
        logging.debug("Running gRPC")
        try:
            await run.io_bound(self.session.initialize)
        except InitError as e:
            logging.error("Failed to connect to Arduino gRPC service: %s", e)
            ui.notify(f"Failed to initialize arduino-cli daemon: {e}", color="negative")
            if self.status_label:
                self.status_label.text = "daemon unavailable"
            return
        boards = await run.io_bound(self.queries.list_all_boards)
        self.render(boards or [])

    def render(self, boards: list[BoardDescriptor]) -> None:
        if self.board_list is None:
            return
        self.board_list.clear()
        with self.board_list:
            if not boards:
                with ui.item():
                    ui.item_label("No boards reported")
            for board in boards:
                with ui.item(), ui.item_section():
                    ui.item_label(board.name)
                    ui.item_label(board.fqbn).props("caption")
        if self.status_label:
            self.status_label.text = f"{len(boards)} boards"

    def build(self) -> None:
        with ui.column().classes("w-full gap-2"):
            self.board_list = ui.list().props("bordered separator").classes("w-full")
            with ui.row().classes("w-full items-center gap-4"):
                ui.button("List Supported Boards", on_click=self.load_boards).classes(
                    "grow"
                )
                self.status_label = ui.label("").classes("text-sm")
            self.daemon_log = ui.log(max_lines=500).classes("w-full h-48")
            attach_ui_log(self.daemon_log)
