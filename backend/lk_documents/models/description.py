from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from lk_documents.database import Base


class Description(Base):
    __tablename__ = "description"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_inn = Column(Text, nullable=False)
    doc_id = Column(Integer, ForeignKey("document.doc_id"), unique=True)

    document = relationship("Document", back_populates="description")
