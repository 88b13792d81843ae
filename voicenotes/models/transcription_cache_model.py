from voicenotes.models.base_import import Base, Column, DateTime, String, Text, utcnow


class TranscriptionCache(Base):
    __tablename__ = "transcriptions"

    file_hash = Column(String, primary_key=True)
    transcript = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
