"""
Domain exceptions for the correction workflow.

Services raise these; routers translate them into ``HTTPException`` using
``status_code`` and ``code`` so the JSON error body stays stable for the
frontend.
"""

from __future__ import annotations

from fastapi import status


class CorreccionError(Exception):
    """Base class for every failure raised by the correction services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "CORRECCION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedStage(CorreccionError):
    """The stage does not take part in the observation/correction cycle."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "UNSUPPORTED_STAGE"

    def __init__(self, etapa: int) -> None:
        super().__init__(f"Etapa {etapa} no soportada en el flujo de observaciones.")
        self.etapa = etapa


class ValidationError(CorreccionError):
    """A request failed boundary validation (files, form fields, JSON blocks).

    ``code`` defaults to ``VALIDATION_ERROR`` and may be narrowed per check,
    e.g. ``FILE_TOO_LARGE`` or ``INVALID_METADATA_FORMAT``.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class MissingExtension(CorreccionError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "MISSING_EXTENSION"

    def __init__(self, filename: str) -> None:
        super().__init__(
            f"No se pudo determinar la extensión del archivo '{filename}'."
        )
        self.filename = filename


class AlreadyPresented(CorreccionError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_PRESENTED"

    def __init__(self, tramite_id: int, etapa: int) -> None:
        super().__init__(
            f"Ya se realizó la primera presentación para E{etapa} "
            f"(trámite {tramite_id})."
        )
        self.tramite_id = tramite_id
        self.etapa = etapa


class PersistenceError(CorreccionError):
    """A relational write failed; the session has already been rolled back."""

    code = "PERSISTENCE_ERROR"


class StorageError(CorreccionError):
    """The object store rejected a put or delete."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "STORAGE_ERROR"


class RecordPersistError(CorreccionError):
    """The file reached storage but its database row could not be written.

    The stored object is removed on a best-effort basis before this is raised.
    """

    code = "RECORD_PERSIST_ERROR"

    def __init__(self, message: str, storage_path: str, compensated: bool) -> None:
        super().__init__(message)
        self.storage_path = storage_path
        self.compensated = compensated
