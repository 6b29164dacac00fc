# personaflow/models/task.py
import datetime
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from personaflow.core.database import Base
from personaflow.models.common import UTCDateTime, new_id, utcnow

class Task(Base):
    """SQLAlchemy model for the 'project_tasks' table."""
    __tablename__ = "project_tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id, index=True)
    workstream_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workstreams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="todo", index=True)
    priority: Mapped[str] = mapped_column(String(32), nullable=False, default="medium")
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', status='{self.status}')>"
