"""
Correction submission orchestrator.

Runs one submission as a sequential pipeline::

    metadata snapshot → (E14) dictamen metadata → files → relink → audit row

Every step except the last aborts the submission on failure.  The audit
row is best effort: the submission has already happened by the time it
is written, so a failed insert is logged and reported through
``CorreccionResponse.log_registrado`` instead of raised.

The relational store and the object store are not covered by one
transaction; each step commits on its own and ``archivo_service.ingest``
compensates the one cross-store gap (stored object, failed row).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.archivo_tramite import ArchivoTramite
from app.schemas.correccion import (
    ArchivoRegistradoResponse,
    CorreccionResponse,
    MetadatosCorreccion,
    MetadatosDictamenItem,
)
from app.services import archivo_service, log_accion_service, metadatos_service
from app.services.archivo_service import ArchivoEntrada
from app.services.file_storage import ObjectStore
from app.services.observacion_service import ya_hizo_primera_presentacion
from app.services.politica_etapa import (
    correction_action_code,
    ensure_etapa_ciclo,
    first_presentation_action_code,
)
from app.utils.constants import ETAPA_PRE_SUSTENTACION, ETAPA_SUSTENTACION
from app.utils.exceptions import AlreadyPresented

logger = logging.getLogger(__name__)

MENSAJE_PRIMERA_E16 = "Primera presentación E16 completada"


def _procesar_archivos_y_metadatos(
    db: Session,
    store: ObjectStore,
    tramite_id: int,
    etapa: int,
    codigo_proyecto: str,
    metadatos: MetadatosCorreccion,
    archivos: Sequence[ArchivoEntrada],
    metadatos_dictamen: Sequence[MetadatosDictamenItem] | None = None,
) -> tuple[int, list[ArchivoTramite]]:
    """Run the shared metadata + file steps; no audit row is written here."""
    snapshot = metadatos_service.supersede(db, tramite_id, etapa, metadatos)

    if etapa == ETAPA_PRE_SUSTENTACION and metadatos_dictamen:
        metadatos_service.supersede_auxiliary(db, tramite_id, metadatos_dictamen)

    registros: list[ArchivoTramite] = []
    for archivo in archivos:
        registros.append(
            archivo_service.ingest(
                db, store, tramite_id, etapa, codigo_proyecto, snapshot.id, archivo
            )
        )

    archivo_service.relink_unmodified(
        db, tramite_id, [archivo.tipo_id for archivo in archivos], snapshot.id
    )
    return snapshot.id, registros


def _numero_correccion(db: Session, tramite_id: int, etapa: int) -> int:
    """Ordinal of the correction being sent; falls back to 1 if the log can't be read."""
    try:
        return (
            log_accion_service.count_actions(
                db, tramite_id, etapa, correction_action_code(etapa)
            )
            + 1
        )
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "_numero_correccion: no se pudo contar correcciones tramite=%d etapa=%d",
            tramite_id, etapa, exc_info=True,
        )
        return 1


def _build_response(
    tramite_id: int,
    etapa: int,
    metadatos_id: int,
    registros: list[ArchivoTramite],
    numero_correccion: int | None,
    log_registrado: bool,
) -> CorreccionResponse:
    return CorreccionResponse(
        tramite_id=tramite_id,
        etapa=etapa,
        metadatos_id=metadatos_id,
        numero_correccion=numero_correccion,
        archivos_subidos=len(registros),
        archivos=[ArchivoRegistradoResponse.model_validate(r) for r in registros],
        log_registrado=log_registrado,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def submit_correccion(
    db: Session,
    store: ObjectStore,
    tramite_id: int,
    etapa: int,
    codigo_proyecto: str,
    id_usuario: int,
    metadatos: MetadatosCorreccion,
    archivos: Sequence[ArchivoEntrada],
    metadatos_dictamen: Sequence[MetadatosDictamenItem] | None = None,
) -> CorreccionResponse:
    """Submit a correction for a trámite at one cycle stage.

    Args:
        db: Active SQLAlchemy session.
        store: Object store for the uploaded bytes.
        tramite_id: Trámite being corrected.
        etapa: Stage number, one of ``ETAPAS_CICLO``.
        codigo_proyecto: Project code embedded in the generated filenames.
        id_usuario: Authenticated actor.
        metadatos: New descriptive fields.
        archivos: Replaced artifacts, possibly empty.
        metadatos_dictamen: E13 dictamen metadata; only used at E14.

    Returns:
        A ``CorreccionResponse`` with the new snapshot id, the file rows
        created and the correction ordinal.

    Raises:
        UnsupportedStage: If *etapa* is not part of the cycle.
        PersistenceError, StorageError, RecordPersistError, MissingExtension:
            Propagated from the pipeline steps; nothing is retried.
    """
    ensure_etapa_ciclo(etapa)
    logger.info(
        "submit_correccion: tramite=%d etapa=%d archivos=%d usuario=%d",
        tramite_id, etapa, len(archivos), id_usuario,
    )

    metadatos_id, registros = _procesar_archivos_y_metadatos(
        db,
        store,
        tramite_id,
        etapa,
        codigo_proyecto,
        metadatos,
        archivos,
        metadatos_dictamen,
    )

    numero = _numero_correccion(db, tramite_id, etapa)
    log = log_accion_service.append_action(
        db,
        tramite_id,
        etapa,
        correction_action_code(etapa),
        id_usuario,
        f"Corrección {numero} enviada",
    )

    logger.info(
        "submit_correccion: corrección %d enviada tramite=%d etapa=%d",
        numero, tramite_id, etapa,
    )
    return _build_response(tramite_id, etapa, metadatos_id, registros, numero, log is not None)


def submit_primera_presentacion(
    db: Session,
    store: ObjectStore,
    tramite_id: int,
    codigo_proyecto: str,
    id_usuario: int,
    metadatos: MetadatosCorreccion,
    archivos: Sequence[ArchivoEntrada],
) -> CorreccionResponse:
    """Complete the unobserved first upload of E16 (sustentación).

    Same metadata and file pipeline as ``submit_correccion`` but no
    correction ordinal is computed and the audit row uses the
    first-presentation action code.  E14 has no equivalent entry point.

    Raises:
        AlreadyPresented: If the first presentation was already logged.
    """
    etapa = ETAPA_SUSTENTACION
    if ya_hizo_primera_presentacion(db, tramite_id, etapa):
        raise AlreadyPresented(tramite_id, etapa)

    logger.info(
        "submit_primera_presentacion: tramite=%d archivos=%d usuario=%d",
        tramite_id, len(archivos), id_usuario,
    )

    metadatos_id, registros = _procesar_archivos_y_metadatos(
        db, store, tramite_id, etapa, codigo_proyecto, metadatos, archivos
    )

    log = log_accion_service.append_action(
        db,
        tramite_id,
        etapa,
        first_presentation_action_code(etapa),
        id_usuario,
        MENSAJE_PRIMERA_E16,
    )
    return _build_response(tramite_id, etapa, metadatos_id, registros, None, log is not None)
