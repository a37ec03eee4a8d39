"""
Stage policy table for the observation/correction cycle.

Pure lookups: which file types a stage expects, which of them are
obligatory, and which ``log_acciones`` codes a stage writes.  The only
database access is ``get_tipos_archivo``, which joins the pure rules with
the display names stored in ``dic_tipo_archivo``.

Design notes
------------
- Stage 14 and 16 change their requirements once the submitter has sent
  something (``ya_envio_correccion``): the first pass asks only for the
  obligatory documents, later passes make everything optional.
- Required types are returned as ordered tuples so that the upload form
  renders in a stable order.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.etapa import TipoArchivo
from app.schemas.observacion import TipoArchivoResponse
from app.utils.constants import (
    ACCION_CORRECCION,
    ACCION_PRIMERA_PRESENTACION,
    ETAPA_BORRADOR,
    ETAPA_PRE_SUSTENTACION,
    ETAPA_SUSTENTACION,
    ETAPAS_CICLO,
    TIPO_TURNITIN_BORRADOR,
    TIPOS_BORRADOR,
    TIPOS_PRE_SUSTENTACION_CORRECCION,
    TIPOS_PRE_SUSTENTACION_INICIAL,
    TIPOS_PROYECTO,
    TIPOS_PROYECTO_OBLIGATORIOS,
    TIPOS_TESIS_FINAL,
)
from app.utils.exceptions import UnsupportedStage

logger = logging.getLogger(__name__)


def ensure_etapa_ciclo(etapa: int) -> None:
    """Raise ``UnsupportedStage`` unless *etapa* is one of ``ETAPAS_CICLO``."""
    if etapa not in ETAPAS_CICLO:
        raise UnsupportedStage(etapa)


def required_file_types(etapa: int, ya_envio_correccion: bool = False) -> tuple[int, ...]:
    """Return the ordered file-type ids a submission at *etapa* works with.

    Args:
        etapa: Stage number.
        ya_envio_correccion: Whether the submitter already sent something
            for this stage (changes the stage-14 set).

    Returns:
        Tuple of ``dic_tipo_archivo`` ids, ascending.

    Raises:
        UnsupportedStage: If *etapa* is not part of the cycle.
    """
    ensure_etapa_ciclo(etapa)
    if etapa == ETAPA_SUSTENTACION:
        return TIPOS_TESIS_FINAL
    if etapa == ETAPA_PRE_SUSTENTACION:
        if ya_envio_correccion:
            return TIPOS_PRE_SUSTENTACION_CORRECCION
        return TIPOS_PRE_SUSTENTACION_INICIAL
    if etapa == ETAPA_BORRADOR:
        return TIPOS_BORRADOR
    return TIPOS_PROYECTO


def is_obligatory(etapa: int, tipo_id: int, ya_envio_correccion: bool = False) -> bool:
    """Return whether *tipo_id* must be uploaded for a submission at *etapa*.

    - E16: every type on the first pass, none afterwards.
    - E14: only the initial pre-sustentación types, and only on the first pass.
    - E11: only the Turnitin report of the borrador.
    - E2–E4: proyecto, Turnitin and IA report.

    Raises:
        UnsupportedStage: If *etapa* is not part of the cycle.
    """
    ensure_etapa_ciclo(etapa)
    if etapa == ETAPA_SUSTENTACION:
        return not ya_envio_correccion
    if etapa == ETAPA_PRE_SUSTENTACION:
        return (not ya_envio_correccion) and tipo_id in TIPOS_PRE_SUSTENTACION_INICIAL
    if etapa == ETAPA_BORRADOR:
        return tipo_id == TIPO_TURNITIN_BORRADOR
    return tipo_id in TIPOS_PROYECTO_OBLIGATORIOS


def correction_action_code(etapa: int) -> int:
    """Return the ``id_accion`` written when a correction is sent at *etapa*.

    Raises:
        UnsupportedStage: If *etapa* has no correction action.
    """
    try:
        return ACCION_CORRECCION[etapa]
    except KeyError:
        raise UnsupportedStage(etapa) from None


def first_presentation_action_code(etapa: int) -> int | None:
    """Return the first-presentation ``id_accion`` for E14/E16, ``None`` otherwise."""
    return ACCION_PRIMERA_PRESENTACION.get(etapa)


def get_tipos_archivo(
    db: Session,
    etapa: int,
    ya_envio_correccion: bool = False,
) -> list[TipoArchivoResponse]:
    """Return the file-type catalogue for the upload form of *etapa*.

    Joins ``required_file_types`` and ``is_obligatory`` with the names in
    ``dic_tipo_archivo``.  Types missing from the dictionary are skipped
    with a warning rather than failing the whole form.

    Args:
        db: Active SQLAlchemy session.
        etapa: Stage number.
        ya_envio_correccion: Whether the submitter already sent something.

    Returns:
        One ``TipoArchivoResponse`` per required type, ordered by id.

    Raises:
        UnsupportedStage: If *etapa* is not part of the cycle.
    """
    tipos_ids = required_file_types(etapa, ya_envio_correccion)
    max_size = get_settings().MAX_FILE_SIZE_MB

    rows = (
        db.query(TipoArchivo)
        .filter(TipoArchivo.id.in_(tipos_ids))
        .order_by(TipoArchivo.id)
        .all()
    )
    found = {row.id for row in rows}
    missing = [t for t in tipos_ids if t not in found]
    if missing:
        logger.warning(
            "get_tipos_archivo: etapa=%d tipos %s ausentes en dic_tipo_archivo",
            etapa, missing,
        )

    tipos = [
        TipoArchivoResponse(
            id=row.id,
            nombre=row.nombre,
            descripcion=row.descripcion,
            obligatorio=is_obligatory(etapa, row.id, ya_envio_correccion),
            max_size=max_size,
        )
        for row in rows
    ]
    logger.debug("get_tipos_archivo: etapa=%d tipos=%d", etapa, len(tipos))
    return tipos
