# backend/slotkeeper/models/availability.py
"""
Recurring weekly availability windows.

Windows are maintained by provider management and read here only. A window
with ``offering_id`` set applies to that offering alone and, when present,
replaces the resource's unscoped windows for it.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class AvailabilityWindow(Base):
    __tablename__ = "availability_windows"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=False)
    offering_id = Column(String(26), ForeignKey("offerings.id"), nullable=True)

    # 0=Sunday .. 6=Saturday
    weekday = Column(Integer, nullable=False)
    start_local = Column(String(5), nullable=False)
    end_local = Column(String(5), nullable=False)
    timezone = Column(String(64), nullable=False)

    resource = relationship("Resource", back_populates="availability_windows")

    __table_args__ = (
        CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_availability_windows_weekday"),
        Index("ix_availability_windows_resource_weekday", "resource_id", "weekday"),
    )

    def __repr__(self) -> str:
        scope = self.offering_id or "default"
        return (
            f"<AvailabilityWindow {self.resource_id} d{self.weekday} "
            f"{self.start_local}-{self.end_local} {self.timezone} [{scope}]>"
        )
