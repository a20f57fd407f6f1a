from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from lk_documents.database import Base


class Product(Base):
    __tablename__ = "product"

    id = Column(Integer, primary_key=True, autoincrement=True)
    certificate_document = Column(Text)
    certificate_document_date = Column(DateTime)
    owner_inn = Column(Text)
    production_date = Column(DateTime)
    tnved_code = Column(Text)
    uit_code = Column(Text)
    uitu_code = Column(Text)
    # Unlinked rows wait here with a NULL doc_id until a document claims them.
    doc_id = Column(Integer, ForeignKey("document.doc_id"), index=True)

    document = relationship("Document", back_populates="products")
