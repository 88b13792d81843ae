from voicenotes.models.base_import import (
    Base,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    relationship,
    utcnow,
)


class ChunkSession(Base):
    __tablename__ = "chunk_sessions"

    id = Column(String, primary_key=True, index=True)  # client supplied session id
    user_id = Column(String, nullable=False, index=True)
    filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    total_chunks = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    chunks = relationship(
        "ChunkPart",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChunkPart.chunk_index",
    )


class ChunkPart(Base):
    __tablename__ = "chunk_parts"
    __table_args__ = (UniqueConstraint("session_id", "chunk_index", name="uq_chunk_parts_session_index"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, ForeignKey("chunk_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    path = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    session = relationship("ChunkSession", back_populates="chunks")
