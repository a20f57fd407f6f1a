class DocumentServiceError(Exception):
    """Base class for every error raised while accepting a document."""


class DocumentValidationError(DocumentServiceError):
    pass


class AdmissionRejectedError(DocumentServiceError):
    """No admission permit was available."""

    def __init__(self, message: str, retry_after: int = 1):
        self.retry_after = retry_after
        super().__init__(message)


class ReferentialIntegrityError(DocumentServiceError):
    def __init__(self, kind: str, ids: list[int], reason: str = "not found"):
        self.kind = kind
        self.ids = ids
        self.reason = reason
        super().__init__(f"{kind} {reason}: {', '.join(str(i) for i in ids)}")


class PersistenceError(DocumentServiceError):
    retryable = False


class TransientPersistenceError(PersistenceError):
    """Connection loss, lock timeout or serialization conflict; the request may be retried."""

    retryable = True


class PermanentPersistenceError(PersistenceError):
    pass
