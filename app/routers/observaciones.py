"""
Observaciones router.

Mounts under ``/api/observaciones`` (prefix set in ``main.py``).  The read
endpoints accept a Bearer token or the internal ``X-API-Key``; the two
POST endpoints need a Bearer token because the submitter is recorded.

Endpoints
---------
GET  /estado/{tramite_id}/{etapa}           Correction status of one stage.
GET  /all/{tramite_id}/{etapa_actual}       Observations grouped by stage.
GET  /tipos-archivos/{etapa}                Upload form catalogue for a stage.
POST /enviar-correccion                     Submit a correction (multipart).
GET  /ya-hizo-primera-e16/{tramite_id}      Whether the first E16 upload is done.
POST /completar-primera-e16                 Complete the first E16 upload.

Multipart layout of the two POST endpoints
------------------------------------------
``tramiteId``, ``etapa`` (correction only), ``codigoProyecto``,
``metadatos`` (JSON object), optional ``metadatosE13`` (JSON list of
``{"tipoId", "metadatos"}``) and any number of file parts.  Each file part
named ``<campo>`` must come with a ``tipoId_<campo>`` field carrying its
file-type id.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.config import get_settings
from app.database import get_db
from app.models.usuario import Usuario
from app.schemas.correccion import (
    CorreccionResponse,
    MetadatosCorreccion,
    MetadatosDictamenItem,
)
from app.schemas.observacion import (
    EstadoObservacionesResponse,
    ObservacionesPorEtapaResponse,
    PrimeraPresentacionEstadoResponse,
    TipoArchivoResponse,
)
from app.services import correccion_service, observacion_service, politica_etapa
from app.services.archivo_service import ArchivoEntrada
from app.services.auth_service import get_caller, get_current_user
from app.services.file_storage import ObjectStore, get_object_store
from app.utils.exceptions import CorreccionError, RecordPersistError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Observaciones"])

_TIPO_ID_PREFIX = "tipoId_"
_metadatos_e13_adapter = TypeAdapter(list[MetadatosDictamenItem])


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def _http_error(exc: CorreccionError) -> HTTPException:
    """Map a domain exception onto the JSON error body used by the frontend."""
    detail: dict = {"error": exc.message, "code": exc.code}
    if isinstance(exc, RecordPersistError):
        detail["compensado"] = exc.compensated
    return HTTPException(status_code=exc.status_code, detail=detail)


# ---------------------------------------------------------------------------
# Multipart helpers
# ---------------------------------------------------------------------------


def _parse_metadatos(raw: str) -> MetadatosCorreccion:
    try:
        return MetadatosCorreccion.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Formato de metadatos inválido: {exc.error_count()} error(es).",
            code="INVALID_METADATA_FORMAT",
        ) from exc


def _parse_metadatos_e13(raw: str | None) -> list[MetadatosDictamenItem] | None:
    if not raw:
        return None
    try:
        return _metadatos_e13_adapter.validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Formato de metadatos E13 inválido: {exc.error_count()} error(es).",
            code="INVALID_METADATA_FORMAT",
        ) from exc


async def _read_archivos(form: FormData) -> list[ArchivoEntrada]:
    """Collect the file parts of *form* with their ``tipoId_<campo>`` companions.

    Raises:
        ValidationError: On too many files, a disallowed extension, an
            oversized file or a missing/invalid type id.
    """
    settings = get_settings()
    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    allowed = {ext.lower() for ext in settings.ALLOWED_EXTENSIONS}

    partes = [
        (campo, valor)
        for campo, valor in form.multi_items()
        if isinstance(valor, StarletteUploadFile)
    ]
    if len(partes) > settings.MAX_FILES_PER_REQUEST:
        raise ValidationError(
            f"Se permiten como máximo {settings.MAX_FILES_PER_REQUEST} archivos por envío.",
            code="TOO_MANY_FILES",
        )

    archivos: list[ArchivoEntrada] = []
    for campo, upload in partes:
        filename = upload.filename or ""
        extension = PurePosixPath(filename).suffix.lower()
        if extension not in allowed:
            raise ValidationError(
                f"Tipo de archivo no permitido: '{filename}'. "
                f"Extensiones válidas: {', '.join(sorted(allowed))}.",
                code="INVALID_FILE_TYPE",
            )

        tipo_raw = form.get(f"{_TIPO_ID_PREFIX}{campo}")
        try:
            tipo_id = int(tipo_raw)
        except (TypeError, ValueError):
            raise ValidationError(
                f"Falta o es inválido '{_TIPO_ID_PREFIX}{campo}' para el archivo '{filename}'.",
                code="MISSING_TIPO_ID",
            )

        content = await upload.read()
        if len(content) > max_bytes:
            raise ValidationError(
                f"El archivo '{filename}' supera el máximo de {settings.MAX_FILE_SIZE_MB} MB.",
                code="FILE_TOO_LARGE",
            )

        archivos.append(
            ArchivoEntrada(
                tipo_id=tipo_id,
                filename=filename,
                content=content,
                content_type=upload.content_type,
            )
        )
    return archivos


# ---------------------------------------------------------------------------
# GET /estado/{tramite_id}/{etapa}
# ---------------------------------------------------------------------------


@router.get(
    "/estado/{tramite_id}/{etapa}",
    response_model=EstadoObservacionesResponse,
    summary="Estado de correcciones de una etapa",
    description=(
        "Calcula a partir de las observaciones y del log de acciones si el trámite "
        "tiene correcciones pendientes en la etapa y si ya envió su corrección."
    ),
    responses={
        400: {"description": "Etapa fuera del ciclo de observaciones."},
        401: {"description": "Sin credenciales o token JWT inválido."},
        403: {"description": "API Key no válida."},
    },
)
def get_estado(
    tramite_id: int,
    etapa: int,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[Usuario | None, Depends(get_caller)],
) -> EstadoObservacionesResponse:
    try:
        return observacion_service.compute_estado(db, tramite_id, etapa)
    except CorreccionError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# GET /all/{tramite_id}/{etapa_actual}
# ---------------------------------------------------------------------------


@router.get(
    "/all/{tramite_id}/{etapa_actual}",
    response_model=ObservacionesPorEtapaResponse,
    summary="Observaciones agrupadas por etapa",
)
def get_all_observaciones(
    tramite_id: int,
    etapa_actual: int,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[Usuario | None, Depends(get_caller)],
) -> ObservacionesPorEtapaResponse:
    return observacion_service.compute_all_observaciones(db, tramite_id, etapa_actual)


# ---------------------------------------------------------------------------
# GET /tipos-archivos/{etapa}
# ---------------------------------------------------------------------------


@router.get(
    "/tipos-archivos/{etapa}",
    response_model=list[TipoArchivoResponse],
    summary="Tipos de archivo del formulario de corrección",
)
def get_tipos_archivos(
    etapa: int,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[Usuario | None, Depends(get_caller)],
    ya_envio_correccion: Annotated[
        bool,
        Query(description="True si el tesista ya envió algo en esta etapa (afecta E14)."),
    ] = False,
) -> list[TipoArchivoResponse]:
    try:
        return politica_etapa.get_tipos_archivo(db, etapa, ya_envio_correccion)
    except CorreccionError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# POST /enviar-correccion
# ---------------------------------------------------------------------------


@router.post(
    "/enviar-correccion",
    response_model=CorreccionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enviar corrección",
    description=(
        "Versiona los metadatos del trámite, sube los archivos corregidos con la "
        "siguiente letra de versión y registra 'Corrección N enviada' en el log."
    ),
    responses={
        201: {"description": "Corrección registrada."},
        400: {"description": "Etapa no soportada o formulario inválido."},
        401: {"description": "Token JWT ausente o inválido."},
        500: {"description": "Error al persistir metadatos o archivos."},
        502: {"description": "El almacenamiento rechazó un archivo."},
    },
)
async def enviar_correccion(
    request: Request,
    tramite_id: Annotated[int, Form(alias="tramiteId")],
    etapa: Annotated[int, Form()],
    codigo_proyecto: Annotated[str, Form(alias="codigoProyecto", min_length=1)],
    metadatos: Annotated[str, Form(description="JSON con titulo, abstract, keywords, presupuesto")],
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
    current_user: Annotated[Usuario, Depends(get_current_user)],
    metadatos_e13: Annotated[str | None, Form(alias="metadatosE13")] = None,
) -> CorreccionResponse:
    """Submit a correction for one stage of a trámite.

    Args:
        request: Raw request, used to read the dynamic file parts.
        tramite_id: Trámite being corrected.
        etapa: Stage number.
        codigo_proyecto: Project code used in the generated filenames.
        metadatos: ``MetadatosCorreccion`` as a JSON string.
        db: Database session.
        store: Object store for the uploaded bytes.
        current_user: Authenticated submitter.
        metadatos_e13: Optional list of E13 dictamen metadata (E14 only).

    Returns:
        The ``CorreccionResponse`` of the submission.
    """
    logger.info(
        "enviar_correccion: usuario=%d tramite=%d etapa=%d",
        current_user.id, tramite_id, etapa,
    )
    try:
        politica_etapa.ensure_etapa_ciclo(etapa)
        datos = _parse_metadatos(metadatos)
        datos_e13 = _parse_metadatos_e13(metadatos_e13)
        archivos = await _read_archivos(await request.form())

        return await run_in_threadpool(
            correccion_service.submit_correccion,
            db,
            store,
            tramite_id,
            etapa,
            codigo_proyecto,
            current_user.id,
            datos,
            archivos,
            datos_e13,
        )
    except CorreccionError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# GET /ya-hizo-primera-e16/{tramite_id}
# ---------------------------------------------------------------------------


@router.get(
    "/ya-hizo-primera-e16/{tramite_id}",
    response_model=PrimeraPresentacionEstadoResponse,
    summary="¿Ya completó la primera presentación de E16?",
)
def get_ya_hizo_primera_e16(
    tramite_id: int,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[Usuario | None, Depends(get_caller)],
) -> PrimeraPresentacionEstadoResponse:
    return PrimeraPresentacionEstadoResponse(
        tramite_id=tramite_id,
        ya_hizo_primera_e16=observacion_service.ya_hizo_primera_presentacion(db, tramite_id),
    )


# ---------------------------------------------------------------------------
# POST /completar-primera-e16
# ---------------------------------------------------------------------------


@router.post(
    "/completar-primera-e16",
    response_model=CorreccionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Completar primera presentación de E16",
    responses={
        201: {"description": "Primera presentación registrada."},
        401: {"description": "Token JWT ausente o inválido."},
        409: {"description": "La primera presentación ya fue realizada."},
    },
)
async def completar_primera_e16(
    request: Request,
    tramite_id: Annotated[int, Form(alias="tramiteId")],
    codigo_proyecto: Annotated[str, Form(alias="codigoProyecto", min_length=1)],
    metadatos: Annotated[str, Form()],
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
    current_user: Annotated[Usuario, Depends(get_current_user)],
) -> CorreccionResponse:
    logger.info(
        "completar_primera_e16: usuario=%d tramite=%d", current_user.id, tramite_id
    )
    try:
        datos = _parse_metadatos(metadatos)
        archivos = await _read_archivos(await request.form())

        return await run_in_threadpool(
            correccion_service.submit_primera_presentacion,
            db,
            store,
            tramite_id,
            codigo_proyecto,
            current_user.id,
            datos,
            archivos,
        )
    except CorreccionError as exc:
        raise _http_error(exc) from exc
