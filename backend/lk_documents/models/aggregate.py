from dataclasses import dataclass, field

from lk_documents.models.document import Document


@dataclass
class DocumentAggregate:
    """A document plus the ids of the description and products it links.

    The ids reference rows that already exist; the aggregate never carries
    the rows themselves.
    """

    document: Document
    description_ids: list[int] = field(default_factory=list)
    product_ids: list[int] = field(default_factory=list)

    @property
    def doc_id(self) -> int | None:
        return self.document.doc_id
