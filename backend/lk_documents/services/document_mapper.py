from lk_documents.errors import DocumentValidationError
from lk_documents.models.aggregate import DocumentAggregate
from lk_documents.models.document import Document
from lk_documents.schemas.document import DocumentDto, DocumentType


class DocumentMapper:
    """Translates between the wire DTO and the persistence aggregate.

    ``description`` and ``products`` on the DTO are foreign-key ids. They are
    carried on the aggregate as ids and never resolved here; the repository
    checks that the rows exist.
    """

    def to_entity(self, dto: DocumentDto) -> DocumentAggregate:
        if dto.doc_id is not None:
            raise DocumentValidationError("doc_id must be null on a new document")
        if len(dto.description) > 1:
            raise DocumentValidationError("a document links at most one description")
        if len(set(dto.products)) != len(dto.products):
            raise DocumentValidationError("product ids must be unique")

        document = Document(
            status=dto.status,
            doc_type=DocumentType(dto.doc_type).value,
            import_request=dto.importRequest,
            owner_inn=dto.owner_inn,
            participant_inn=dto.participant_inn,
            producer_inn=dto.producer_inn,
            production_date=dto.production_date,
            production_type=dto.production_type,
            reg_date=dto.reg_date,
            reg_number=dto.reg_number,
        )
        return DocumentAggregate(
            document=document,
            description_ids=list(dto.description),
            product_ids=list(dto.products),
        )

    def to_dto(self, aggregate: DocumentAggregate) -> DocumentDto:
        doc = aggregate.document
        return DocumentDto(
            description=aggregate.description_ids[:1],
            doc_id=doc.doc_id,
            status=doc.status,
            doc_type=DocumentType(doc.doc_type),
            importRequest=bool(doc.import_request),
            owner_inn=doc.owner_inn,
            participant_inn=doc.participant_inn,
            producer_inn=doc.producer_inn,
            production_date=doc.production_date,
            production_type=doc.production_type,
            products=list(aggregate.product_ids),
            reg_date=doc.reg_date,
            reg_number=doc.reg_number,
        )
