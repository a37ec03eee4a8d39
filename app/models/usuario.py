"""Usuario model: person acting on a trámite (tesista, asesor, coordinador)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.database import Base


class Usuario(Base):
    """System user resolved from the ``sub`` claim of the Bearer token.

    Both submitters (who upload corrections) and reviewers (who raise
    observations) are rows of this table.

    Attributes:
        id: Primary key, also the JWT ``sub`` claim.
        uuid: Identity-provider id, kept for traceability.
        correo: Unique email address.
        nombres: Given names.
        apellidos: Family names.
        activo: Whether the account may act on the system.
        created_at: Record creation timestamp.
    """

    __tablename__ = "usuario"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(64), unique=True, nullable=True)
    correo = Column(String(200), unique=True, nullable=False)
    nombres = Column(String(200), nullable=True)
    apellidos = Column(String(200), nullable=True)
    activo = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
