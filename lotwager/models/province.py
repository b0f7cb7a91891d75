from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import Boolean, DateTime, JSON, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .id_type import ID_TYPE

REGION_MULTI_PROVINCE = "M1"
REGION_SINGLE_DRAW = "M2"
REGIONS = (REGION_MULTI_PROVINCE, REGION_SINGLE_DRAW)


class Province(Base):
    """A lottery station. Its ``region`` selects the draw layout."""

    __tablename__ = "provinces"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    province_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    region: Mapped[str] = mapped_column(String(2), nullable=False)
    draw_days: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Province(province_id={pid}, region={region})>".format(
            pid=self.province_id, region=self.region
        )

    @classmethod
    def get_by_province_id(
        cls, session: Session, province_id: str
    ) -> Optional["Province"]:
        return session.scalar(select(cls).where(cls.province_id == province_id))

    @classmethod
    def region_map(cls, session: Session, province_ids: Iterable[str]) -> dict[str, str]:
        """Return ``{province_id: region}`` for the registered ids among ``province_ids``."""
        ids = list(dict.fromkeys(province_ids))
        if not ids:
            return {}
        rows = session.execute(
            select(cls.province_id, cls.region).where(cls.province_id.in_(ids))
        ).all()
        return {pid: region for pid, region in rows}


__all__ = [
    "Province",
    "REGIONS",
    "REGION_MULTI_PROVINCE",
    "REGION_SINGLE_DRAW",
]
