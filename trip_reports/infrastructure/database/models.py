"""SQLAlchemy ORM models for persisted reports"""

import uuid
from sqlalchemy import Column, BigInteger, DateTime, Integer, Text, JSON, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ReportRecord(Base):
    """Report aggregate row; JSON columns hold the domain sections"""

    __tablename__ = "reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(BigInteger, nullable=False, unique=True, index=True)
    order_number = Column(Text, nullable=False, default="")
    processor = Column(BigInteger, nullable=False, index=True)
    team = Column(JSON, nullable=False, default=list)
    data_a = Column(JSON, nullable=False, default=dict)
    data_b = Column(JSON, nullable=False, default=dict)
    calculation = Column(JSON, nullable=False, default=dict)
    state = Column(Text, nullable=False, default="draft", index=True)
    history = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    date_send = Column(DateTime(timezone=True), nullable=True)
    send_id = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Optimistic locking: UPDATE ... WHERE version = :seen
    __mapper_args__ = {"version_id_col": version}
