from voicenotes.models.base_import import Base, BigInteger, Column, String


class Deduplication(Base):
    __tablename__ = "deduplications"

    signature = Column(String, primary_key=True)
    recording_id = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False, index=True)  # epoch millis
