"""Monitor model - endpoints under health observation."""
from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base


class Monitor(Base):
    """A monitored endpoint - HTTP URL, TCP port, or UDP port."""

    __tablename__ = "monitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # http, tcp, udp
    target = Column(String, nullable=False)  # URL for http, host:port otherwise
    expected_status = Column(Integer, nullable=True)  # HTTP only, NULL = 200
    timeout_ms = Column(Integer, nullable=False, default=5000)
    interval_sec = Column(Integer, nullable=False, default=60)
    enabled = Column(Boolean, nullable=False, default=True)

    # Health tracking, rewritten every check
    fail_streak = Column(Integer, nullable=False, default=0)
    ok_streak = Column(Integer, nullable=False, default=0)
    last_state_ok = Column(Boolean, nullable=True)  # raw result of the last check
    health_state = Column(String, nullable=False, default="unknown")  # debounced: unknown, up, down

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    check_results = relationship("CheckResult", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
    incidents = relationship("Incident", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
    alerts = relationship("AlertLog", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
