from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime
from database import Base


class KeyValueBlob(Base):
    """
    One serialized blob per store key.
    Collections are stored whole; every write replaces the value.
    """
    __tablename__ = "kv_blobs"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
