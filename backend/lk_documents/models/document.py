from sqlalchemy import Boolean, Column, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from lk_documents.database import Base


class Document(Base):
    __tablename__ = "document"

    doc_id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Text)
    doc_type = Column(Text, nullable=False)
    import_request = Column(Boolean, nullable=False, default=False)
    owner_inn = Column(Text)
    participant_inn = Column(Text)
    producer_inn = Column(Text)
    production_date = Column(DateTime, nullable=False)
    production_type = Column(Text)
    reg_date = Column(DateTime, nullable=False)
    reg_number = Column(Text)

    # Inverse sides only; the foreign keys live on description and product.
    description = relationship("Description", back_populates="document", uselist=False, lazy="raise")
    products = relationship("Product", back_populates="document", order_by="Product.id", lazy="raise")
