from sqlalchemy import Column, String, Text, DateTime, PrimaryKeyConstraint
from sqlalchemy.sql import func
from db import Base

class KVRecord(Base):
    """One JSON document stored under (namespace, key).

    A namespace is the whole key space of one store instance; keys inside it
    follow the schema in keys.py.
    """
    __tablename__ = "kv_records"
    namespace = Column(String(64), nullable=False)
    key = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)
    written_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (PrimaryKeyConstraint("namespace", "key"),)
