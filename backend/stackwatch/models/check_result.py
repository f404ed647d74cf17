"""CheckResult model - immutable history of probe outcomes."""
from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base


class CheckResult(Base):
    """One probe execution against a monitor."""

    __tablename__ = "check_results"
    __table_args__ = (
        Index("idx_check_results_monitor_time", "monitor_id", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    ok = Column(Boolean, nullable=False)
    status_code = Column(Integer, nullable=True)  # HTTP only
    latency_ms = Column(Integer, nullable=True)
    error = Column(String, nullable=True)
    checked_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    monitor = relationship("Monitor", back_populates="check_results")
