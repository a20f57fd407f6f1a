import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from lk_documents.errors import ReferentialIntegrityError
from lk_documents.models.aggregate import DocumentAggregate
from lk_documents.models.description import Description
from lk_documents.models.product import Product

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Writes a document aggregate inside the caller's transaction.

    The repository only flushes; committing or rolling back belongs to the
    surrounding ``UnitOfWork``.
    """

    def __init__(self, session: Session):
        self.session = session

    def save(self, aggregate: DocumentAggregate) -> DocumentAggregate:
        now = datetime.now(timezone.utc)
        document = aggregate.document
        if document.production_date is None:
            document.production_date = now
        if document.reg_date is None:
            document.reg_date = now

        # The document goes in first so the linked rows have a doc_id to point at.
        self.session.add(document)
        self.session.flush()

        self._link_description(document.doc_id, aggregate.description_ids)
        self._link_products(document.doc_id, aggregate.product_ids, now)
        self.session.flush()

        logger.debug(
            "Saved document %s with description=%s products=%s",
            document.doc_id, aggregate.description_ids, aggregate.product_ids,
        )
        return aggregate

    def _link_description(self, doc_id: int, ids: list[int]):
        if not ids:
            return
        rows = self._load(Description, ids, "description")
        for row in rows:
            row.doc_id = doc_id

    def _link_products(self, doc_id: int, ids: list[int], now: datetime):
        if not ids:
            return
        rows = self._load(Product, ids, "product")
        for row in rows:
            row.doc_id = doc_id
            if row.production_date is None:
                row.production_date = now
            if row.certificate_document_date is None:
                row.certificate_document_date = now

    def _load(self, model, ids: list[int], kind: str) -> list:
        rows = (
            self.session.query(model)
            .filter(model.id.in_(ids))
            .with_for_update()
            .all()
        )
        found = {row.id for row in rows}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ReferentialIntegrityError(kind, missing)
        claimed = sorted(row.id for row in rows if row.doc_id is not None)
        if claimed:
            raise ReferentialIntegrityError(kind, claimed, reason="already linked to another document")
        return rows
