"""Observacion model: reviewer remark raised against a stage of a trámite."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class Observacion(Base):
    """Remark raised by a reviewer (asesor, jurado, coordinador) at one stage.

    Rows are created by the reviewer-side application and are never updated
    or deleted here.  An observation counts as *pending* while
    ``visto_bueno == 0``; it is considered resolved only by inference over
    the ``log_acciones`` history.

    Attributes:
        id: Primary key.
        id_tramite: FK to Tramite.
        id_etapa: FK to Etapa.
        id_usuario: FK to the reviewing Usuario.
        id_rol: Reviewer role id in the parent system.
        servicio: Name of the service/office the reviewer acted for.
        visto_bueno: 0 = pending, 1 = approved.
        observacion: Free-text remark.
        fecha: Creation timestamp.
    """

    __tablename__ = "tbl_observaciones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_tramite = Column(Integer, ForeignKey("tramite.id"), nullable=False, index=True)
    id_etapa = Column(Integer, ForeignKey("etapa.id"), nullable=False)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=False)
    id_rol = Column(Integer, nullable=True)
    servicio = Column(String(200), nullable=True)
    visto_bueno = Column(Integer, default=0, nullable=False)
    observacion = Column(Text, nullable=True)
    fecha = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    usuario = relationship("Usuario", lazy="select")
    etapa = relationship("Etapa", lazy="select")
