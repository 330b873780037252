from __future__ import annotations

import logging
from collections.abc import Iterable

from board_explorer.services import protocol
from board_explorer.services.errors import TransportError
from board_explorer.services.protocol import BoardDescriptor
from board_explorer.services.session_channel import SessionChannel
from board_explorer.services.session_manager import SessionManager


class QueryService:
    """
    Best-effort reads against a ready session.

    Missing initialization is a caller error and raises NotInitialized. Failures
    of the query itself are logged and come back as an empty list.
    """

    def __init__(self, session: SessionManager, channel: SessionChannel) -> None:
        self.session = session
        self.channel = channel

    def list_all_boards(self, search_args: Iterable[str] = ()) -> list[BoardDescriptor]:
        """Return every board the daemon knows about, in the daemon's order."""
        # Read once: a concurrent reset must not change the handle mid-call
        handle = self.session.current_handle()
        request = protocol.board_list_all_request(handle, search_args)
        try:
            response = self.channel.blocking_call(request)
            items = list(response.boards)
        except TransportError as e:
            logging.error("Failed to obtain board list: %s", e)
            return []
        except Exception as e:
            logging.error("Failed to obtain board list: malformed response: %s", e)
            return []

        boards = []
        for item in items:
            try:
                boards.append(BoardDescriptor.from_message(item))
            except (TypeError, ValueError) as e:
                logging.warning("Skipping malformed board entry: %s", e)
        logging.debug("BoardListAll returned %d boards", len(boards))
        return boards
