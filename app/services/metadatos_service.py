"""
Metadata snapshot versioning.

Every submission supersedes the trámite's active ``TramiteMetadatos``
snapshot.  At E14 the submitter may also update the dictamen metadata
(``MetadatosDictamenBorrador``) of the documents carried over from E13.

Both operations deactivate and insert inside one transaction: if the
insert fails the deactivation is rolled back with it, so the trámite is
never left without an active snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.tramite_metadatos import MetadatosDictamenBorrador, TramiteMetadatos
from app.schemas.correccion import MetadatosCorreccion, MetadatosDictamenItem
from app.services.versionado import supersede_rows
from app.utils.constants import (
    ETAPA_PRE_SUSTENTACION,
    ETAPAS_CON_CONCLUSIONES,
    TIPO_ACTA_REUNION,
)
from app.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def supersede(
    db: Session,
    tramite_id: int,
    etapa: int,
    metadatos: MetadatosCorreccion,
) -> TramiteMetadatos:
    """Replace the active metadata snapshot of a trámite.

    ``conclusiones`` is stored only for stages 11, 14 and 16; for earlier
    stages it is written as NULL even if the caller supplied a value.

    Args:
        db: Active SQLAlchemy session.
        tramite_id: Trámite whose snapshot is replaced.
        etapa: Stage the submission belongs to.
        metadatos: Validated descriptive fields.

    Returns:
        The new active ``TramiteMetadatos`` (committed).

    Raises:
        PersistenceError: If the deactivate/insert transaction fails.
    """
    conclusiones = metadatos.conclusiones if etapa in ETAPAS_CON_CONCLUSIONES else None

    try:
        snapshot = supersede_rows(
            db,
            TramiteMetadatos,
            keys={"id_tramite": tramite_id},
            payload={
                "id_etapa": etapa,
                "titulo": metadatos.titulo,
                "abstract": metadatos.abstract,
                "keywords": metadatos.keywords,
                "presupuesto": metadatos.presupuesto,
                "conclusiones": conclusiones,
            },
        )
        db.commit()
        db.refresh(snapshot)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "supersede: fallo al versionar metadatos tramite=%d etapa=%d: %s",
            tramite_id, etapa, exc,
        )
        raise PersistenceError("Error al guardar los metadatos corregidos.") from exc

    logger.info(
        "supersede: tramite=%d etapa=%d nuevo metadatos_id=%d",
        tramite_id, etapa, snapshot.id,
    )
    return snapshot


def supersede_auxiliary(
    db: Session,
    tramite_id: int,
    items: Sequence[MetadatosDictamenItem],
) -> list[MetadatosDictamenBorrador]:
    """Version the E13 dictamen metadata resubmitted from E14.

    Each item replaces the active row for ``(tramite_id, tipo_id)``.  Meeting
    time and place are kept only for the Acta (type 15).

    Raises:
        PersistenceError: If any item cannot be written; no item is kept.
    """
    nuevos: list[MetadatosDictamenBorrador] = []
    try:
        for item in items:
            payload = {
                "etapa": ETAPA_PRE_SUSTENTACION,
                "fecha_documento": item.metadatos.fecha_documento,
            }
            if item.tipo_id == TIPO_ACTA_REUNION:
                payload["hora_reunion"] = item.metadatos.hora_reunion
                payload["lugar_reunion"] = item.metadatos.lugar_reunion

            nuevos.append(
                supersede_rows(
                    db,
                    MetadatosDictamenBorrador,
                    keys={"id_tramite": tramite_id, "id_tipo_archivo": item.tipo_id},
                    payload=payload,
                )
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "supersede_auxiliary: fallo en metadatos E13 tramite=%d: %s",
            tramite_id, exc,
        )
        raise PersistenceError("Error al guardar metadatos E13.") from exc

    logger.info(
        "supersede_auxiliary: tramite=%d tipos=%s",
        tramite_id, [item.tipo_id for item in items],
    )
    return nuevos
