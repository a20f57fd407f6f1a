from datetime import datetime
from enum import Enum

from pydantic import BaseModel, field_validator


class DocumentType(str, Enum):
    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"


class DocumentDto(BaseModel):
    description: list[int] = []
    doc_id: int | None = None
    status: str | None = None
    doc_type: DocumentType
    importRequest: bool = False
    owner_inn: str | None = None
    participant_inn: str | None = None
    producer_inn: str | None = None
    production_date: datetime | None = None
    production_type: str | None = None
    products: list[int] = []
    reg_date: datetime | None = None
    reg_number: str | None = None


class DocumentCreate(DocumentDto):
    """Incoming document. The server assigns ``doc_id``."""

    @field_validator("doc_id")
    @classmethod
    def doc_id_must_be_absent(cls, v: int | None) -> int | None:
        if v is not None:
            raise ValueError("doc_id is assigned by the server and must be null")
        return v

    @field_validator("description")
    @classmethod
    def single_description(cls, v: list[int]) -> list[int]:
        if len(v) > 1:
            raise ValueError("a document links at most one description")
        _check_ids(v)
        return v

    @field_validator("products")
    @classmethod
    def distinct_products(cls, v: list[int]) -> list[int]:
        _check_ids(v)
        if len(set(v)) != len(v):
            raise ValueError("product ids must be unique")
        return v


def _check_ids(ids: list[int]) -> None:
    if any(i <= 0 for i in ids):
        raise ValueError("ids must be positive integers")
