"""Incident model - spans during which a monitor was considered down."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base


class Incident(Base):
    """An outage record. ended_at is NULL while the incident is open."""

    __tablename__ = "incidents"
    __table_args__ = (
        Index("idx_incidents_monitor_started", "monitor_id", "started_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    summary = Column(String, nullable=False)

    monitor = relationship("Monitor", back_populates="incidents")

    @property
    def is_open(self) -> bool:
        return self.ended_at is None
