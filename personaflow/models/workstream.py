# personaflow/models/workstream.py
import datetime
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from personaflow.core.database import Base
from personaflow.models.common import UTCDateTime, new_id, utcnow

class Workstream(Base):
    """SQLAlchemy model for the 'workstreams' table."""
    __tablename__ = "workstreams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id, index=True)
    persona_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("personas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Raw text; legacy rows may hold quoted or capitalized values
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="planning")
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Workstream(id={self.id}, name='{self.name}', persona_id={self.persona_id})>"
