"""GenerationRecord model: one row per generate/advice request (the usage metric)."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from agent_manager.db.base import Base

AGENT_TYPE_MAX_LENGTH = 50


class GenerationRecord(Base):
    __tablename__ = "agent_generations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    user = relationship("User", back_populates="generations")

    agent_type = Column(String(AGENT_TYPE_MAX_LENGTH), nullable=False)
    ai_provider = Column(String(20), nullable=False)  # gemini, claude, openai
    description = Column(Text, nullable=False, default="")

    # Filled in when the user exports the configured agent
    agent_name = Column(String(255), nullable=True)
    file_content = Column(Text, nullable=True)
    file_size_bytes = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), index=True)
