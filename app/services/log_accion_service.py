"""
Audit log (``log_acciones``) access.

Reads are plain filtered queries; the single write, ``append_action``, is
best effort: an audit row that cannot be stored is logged and rolled back
but never aborts the submission that produced it.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.log_accion import LogAccion

logger = logging.getLogger(__name__)


def _actions_query(db: Session, tramite_id: int, etapa: int, id_accion: int):
    return db.query(LogAccion).filter(
        LogAccion.id_tramite == tramite_id,
        LogAccion.id_etapa == etapa,
        LogAccion.id_accion == id_accion,
    )


def list_actions(
    db: Session, tramite_id: int, etapa: int, id_accion: int
) -> list[LogAccion]:
    """Return the matching audit rows, most recent first."""
    return (
        _actions_query(db, tramite_id, etapa, id_accion)
        .order_by(LogAccion.fecha.desc(), LogAccion.id.desc())
        .all()
    )


def count_actions(db: Session, tramite_id: int, etapa: int, id_accion: int) -> int:
    """Count how many times *id_accion* was logged for a trámite at *etapa*."""
    total: int = (
        db.query(func.count(LogAccion.id))
        .filter(
            LogAccion.id_tramite == tramite_id,
            LogAccion.id_etapa == etapa,
            LogAccion.id_accion == id_accion,
        )
        .scalar()
        or 0
    )
    logger.debug(
        "count_actions: tramite=%d etapa=%d accion=%d -> %d",
        tramite_id, etapa, id_accion, total,
    )
    return total


def has_action(db: Session, tramite_id: int, etapa: int, id_accion: int) -> bool:
    """Return True as soon as one matching audit row exists."""
    row = (
        _actions_query(db, tramite_id, etapa, id_accion)
        .with_entities(LogAccion.id)
        .limit(1)
        .first()
    )
    return row is not None


def append_action(
    db: Session,
    tramite_id: int,
    etapa: int,
    id_accion: int,
    id_usuario: int,
    mensaje: str,
) -> LogAccion | None:
    """Insert one audit row and commit it.

    Failures are logged and rolled back; the caller is never interrupted.

    Returns:
        The persisted ``LogAccion``, or ``None`` if the insert failed.
    """
    registro = LogAccion(
        id_tramite=tramite_id,
        id_etapa=etapa,
        id_accion=id_accion,
        id_usuario=id_usuario,
        mensaje=mensaje,
    )
    try:
        db.add(registro)
        db.commit()
        db.refresh(registro)
    except Exception:
        db.rollback()
        logger.exception(
            "append_action: no se pudo registrar accion=%d tramite=%d etapa=%d",
            id_accion, tramite_id, etapa,
        )
        return None

    logger.info(
        "append_action: tramite=%d etapa=%d accion=%d mensaje='%s'",
        tramite_id, etapa, id_accion, mensaje,
    )
    return registro
