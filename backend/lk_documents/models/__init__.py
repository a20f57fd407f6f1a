from lk_documents.models.document import Document
from lk_documents.models.description import Description
from lk_documents.models.product import Product
from lk_documents.models.aggregate import DocumentAggregate

__all__ = ["Document", "Description", "Product", "DocumentAggregate"]
