from voicenotes.models.base_import import Base, Column, Integer, String, DateTime, Text, utcnow


class Recording(Base):
    __tablename__ = "recordings"

    # Derived from file_path, so one storage location maps to one row
    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    file_path = Column(String, nullable=False, unique=True)
    filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False)  # in bytes
    file_hash = Column(String, nullable=False, index=True)

    # uploaded, processing, processed, failed
    status = Column(String, nullable=False, default="uploaded", index=True)

    transcript = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
