from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .bet_type import BetType  # noqa: F401
from .province import (  # noqa: F401
    Province,
    REGIONS,
    REGION_MULTI_PROVINCE,
    REGION_SINGLE_DRAW,
)
from .draw_result import DrawResult, PRIZE_TIERS, REGION_TIERS  # noqa: F401
from .bet import (  # noqa: F401
    Bet,
    Transaction,
    STATUS_LOST,
    STATUS_PENDING,
    STATUS_WON,
    TERMINAL_STATUSES,
    TRANSACTION_WIN,
)

__all__ = [
    "Base",
    "BetType",
    "Province",
    "DrawResult",
    "Bet",
    "Transaction",
    "PRIZE_TIERS",
    "REGION_TIERS",
    "REGIONS",
    "REGION_MULTI_PROVINCE",
    "REGION_SINGLE_DRAW",
    "STATUS_PENDING",
    "STATUS_WON",
    "STATUS_LOST",
    "TERMINAL_STATUSES",
    "TRANSACTION_WIN",
]
