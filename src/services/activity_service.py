from typing import Any, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.logs import api_logger, debug_logger
from src.models.activity import Activity, ActivityType


class ActivityLog:
    """Append-only activity journal of a board.

    Entries are written after the primary change has committed, in a session
    of their own. A failed write is logged and dropped: it never undoes or
    fails the change it describes.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def append(
        self,
        board_id: int,
        type: ActivityType,
        user_id: Optional[str] = None,
        card_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        try:
            async with self.session_factory() as session:
                session.add(Activity(
                    board_id=board_id,
                    card_id=card_id,
                    user_id=user_id,
                    type=type,
                    details=details or {}
                ))
                await session.commit()
            debug_logger.debug(f"Активность {type.value} записана для доски {board_id}")
        except Exception as e:
            debug_logger.log_exception(f"Не удалось записать активность {type.value}")
            api_logger.warning(f"Activity {type.value} for board {board_id} was not recorded: {e}")
