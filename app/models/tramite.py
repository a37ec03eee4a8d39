"""Tramite model: a thesis application moving through review stages."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.database import Base


class Tramite(Base):
    """Thesis case identified by ``id`` and a human-readable project code.

    The current stage is advanced by the approval workflow, which lives
    outside this service; here it is only read.

    Attributes:
        id: Primary key.
        codigo_proyecto: Project code embedded in every generated filename,
            e.g. ``"P24-0153"``.
        id_etapa_actual: FK to Etapa, the stage the case currently sits in.
        id_usuario: FK to the submitting Usuario (tesista).
        created_at: Record creation timestamp.
    """

    __tablename__ = "tramite"

    id = Column(Integer, primary_key=True, autoincrement=True)
    codigo_proyecto = Column(String(50), unique=True, nullable=False)
    id_etapa_actual = Column(Integer, ForeignKey("etapa.id"), nullable=True)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
