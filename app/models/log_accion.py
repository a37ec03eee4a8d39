"""LogAccion model: append-only audit log of submitter actions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.database import Base


class LogAccion(Base):
    """One action performed on a trámite at a given stage.

    The correction status of a stage is derived from how many rows exist
    per ``(id_tramite, id_etapa, id_accion)``, so rows are only ever
    inserted.

    Attributes:
        id: Primary key.
        id_tramite: FK to Tramite.
        id_etapa: Stage the action belongs to.
        id_accion: Action code (see ``constants.ACCION_CORRECCION``).
        id_usuario: Actor.
        mensaje: Human-readable message, e.g. ``"Corrección 2 enviada"``.
        fecha: Insertion timestamp.
    """

    __tablename__ = "log_acciones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_tramite = Column(Integer, ForeignKey("tramite.id"), nullable=False, index=True)
    id_etapa = Column(Integer, nullable=False)
    id_accion = Column(Integer, nullable=False)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=True)
    mensaje = Column(String(500), nullable=True)
    fecha = Column(DateTime, default=func.now(), nullable=False)
