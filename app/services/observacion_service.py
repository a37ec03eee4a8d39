"""
Observation state engine.

The correction status of a stage is never stored: it is recomputed on
every call from two append-only sources, ``tbl_observaciones`` (what the
reviewers asked for) and ``log_acciones`` (what the submitter sent).

Rules
-----
- E2, E3, E4, E11: the submitter is up to date once the number of sent
  corrections reaches the number of pending observations.
- E14, E16: these stages start with an unobserved first upload, so the
  first presentation counts as one extra submission.  With no pending
  observations the submitter is "done" as soon as anything was sent;
  with pending observations they need strictly more submissions than
  observations.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy.orm import Session, joinedload

from app.models.observacion import Observacion
from app.schemas.observacion import (
    EstadoObservacionesResponse,
    ObservacionesPorEtapaResponse,
    ObservacionResponse,
)
from app.services import log_accion_service
from app.services.politica_etapa import (
    correction_action_code,
    ensure_etapa_ciclo,
    first_presentation_action_code,
)
from app.utils.constants import (
    ETAPA_SUSTENTACION,
    ETAPAS_CICLO,
    ETAPAS_DOS_FASES,
    VISTO_BUENO_PENDIENTE,
)

logger = logging.getLogger(__name__)


def _observaciones_query(db: Session, tramite_id: int):
    return (
        db.query(Observacion)
        .options(joinedload(Observacion.usuario))
        .filter(Observacion.id_tramite == tramite_id)
    )


def compute_estado(db: Session, tramite_id: int, etapa: int) -> EstadoObservacionesResponse:
    """Derive the correction status of a trámite at one stage.

    Args:
        db: Active SQLAlchemy session.
        tramite_id: Trámite to inspect.
        etapa: Stage number, one of ``ETAPAS_CICLO``.

    Returns:
        An ``EstadoObservacionesResponse`` with the pending count, the
        number of submissions and the two derived flags.

    Raises:
        UnsupportedStage: If *etapa* is not part of the cycle.
    """
    ensure_etapa_ciclo(etapa)

    observaciones: list[Observacion] = (
        _observaciones_query(db, tramite_id)
        .filter(Observacion.id_etapa == etapa)
        .order_by(Observacion.fecha.desc(), Observacion.id.desc())
        .all()
    )
    pendientes = sum(1 for obs in observaciones if obs.visto_bueno == VISTO_BUENO_PENDIENTE)

    enviadas = log_accion_service.count_actions(
        db, tramite_id, etapa, correction_action_code(etapa)
    )

    if etapa in ETAPAS_DOS_FASES:
        total_envios = enviadas
        if log_accion_service.has_action(
            db, tramite_id, etapa, first_presentation_action_code(etapa)
        ):
            total_envios += 1

        if pendientes == 0:
            tiene_correcciones = False
            ya_envio_correccion = total_envios > 0
        else:
            tiene_correcciones = True
            ya_envio_correccion = total_envios > pendientes
    else:
        total_envios = enviadas
        tiene_correcciones = pendientes > 0
        ya_envio_correccion = enviadas >= pendientes

    logger.info(
        "compute_estado: tramite=%d etapa=%d pendientes=%d enviadas=%d total=%d "
        "tiene_correcciones=%s ya_envio=%s",
        tramite_id, etapa, pendientes, enviadas, total_envios,
        tiene_correcciones, ya_envio_correccion,
    )

    return EstadoObservacionesResponse(
        tramite_id=tramite_id,
        etapa=etapa,
        tiene_correcciones=tiene_correcciones,
        numero_observaciones=pendientes,
        correcciones_enviadas=enviadas,
        total_envios=total_envios,
        ya_envio_correccion=ya_envio_correccion,
        observaciones=[ObservacionResponse.model_validate(obs) for obs in observaciones],
    )


def compute_all_observaciones(
    db: Session, tramite_id: int, etapa_actual: int
) -> ObservacionesPorEtapaResponse:
    """Return every observation of the cycle stages reached so far, grouped by stage.

    Only stages of ``ETAPAS_CICLO`` that are ``<= etapa_actual`` are read.
    Within a stage observations keep newest-first order.

    Args:
        db: Active SQLAlchemy session.
        tramite_id: Trámite to inspect.
        etapa_actual: Stage the trámite currently sits in.

    Returns:
        An ``ObservacionesPorEtapaResponse``; stages without observations
        are omitted from both the mapping and the stage list.
    """
    etapas = [etapa for etapa in ETAPAS_CICLO if etapa <= etapa_actual]
    if not etapas:
        return ObservacionesPorEtapaResponse(total_observaciones=0)

    rows: list[Observacion] = (
        _observaciones_query(db, tramite_id)
        .filter(Observacion.id_etapa.in_(etapas))
        .order_by(Observacion.fecha.desc(), Observacion.id.desc())
        .all()
    )

    agrupadas: dict[int, list[ObservacionResponse]] = defaultdict(list)
    for obs in rows:
        agrupadas[obs.id_etapa].append(ObservacionResponse.model_validate(obs))

    etapas_con_observaciones = sorted(agrupadas)
    logger.debug(
        "compute_all_observaciones: tramite=%d hasta etapa=%d total=%d etapas=%s",
        tramite_id, etapa_actual, len(rows), etapas_con_observaciones,
    )

    return ObservacionesPorEtapaResponse(
        observaciones_por_etapa={etapa: agrupadas[etapa] for etapa in etapas_con_observaciones},
        total_observaciones=len(rows),
        etapas_con_observaciones=etapas_con_observaciones,
    )


def ya_hizo_primera_presentacion(
    db: Session, tramite_id: int, etapa: int = ETAPA_SUSTENTACION
) -> bool:
    """Return whether the first-presentation action was logged for *etapa*."""
    ensure_etapa_ciclo(etapa)
    id_accion = first_presentation_action_code(etapa)
    if id_accion is None:
        return False
    return log_accion_service.has_action(db, tramite_id, etapa, id_accion)
