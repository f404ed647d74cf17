"""HostStats model - one host snapshot per check cycle."""
from datetime import datetime
from sqlalchemy import BigInteger, Column, Float, Integer, DateTime

from ..database import Base


class HostStats(Base):
    """Point-in-time CPU, memory, disk, load and network sample."""

    __tablename__ = "host_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cpu_percent = Column(Float, nullable=False, default=0)
    mem_used_mb = Column(Integer, nullable=False, default=0)
    mem_avail_mb = Column(Integer, nullable=False, default=0)
    disk_used_percent = Column(Float, nullable=False, default=0)
    load1 = Column(Float, nullable=False, default=0)
    load5 = Column(Float, nullable=False, default=0)
    load15 = Column(Float, nullable=False, default=0)
    net_rx_bytes = Column(BigInteger, nullable=False, default=0)
    net_tx_bytes = Column(BigInteger, nullable=False, default=0)
    uptime_sec = Column(BigInteger, nullable=False, default=0)
    checked_at = Column(DateTime, default=datetime.utcnow, index=True)
