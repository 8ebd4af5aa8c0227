# app/models/live_class_module.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from app.core.database import Base


class LiveClassModule(Base):
    __tablename__ = "live_class_modules"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_live_class_modules_time_window"),
    )

    id = Column(Integer, primary_key=True, index=True)
    live_class_id = Column(
        Integer,
        ForeignKey("live_classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    is_free = Column(Boolean, default=False, nullable=False)

    zoom_link = Column(Text, nullable=True)
    zoom_meeting_id = Column(String(64), nullable=True)
    zoom_password = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LiveClassModule(id={self.id}, live_class_id={self.live_class_id}, position={self.position})>"
