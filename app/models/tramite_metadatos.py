"""TramiteMetadatos and MetadatosDictamenBorrador: versioned descriptive data."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.sql import func

from app.database import Base


class TramiteMetadatos(Base):
    """Snapshot of the thesis' descriptive fields at the time of a submission.

    A new snapshot is inserted on every submission; earlier ones are kept
    with ``activo=False``.  At most one row per trámite is active.

    Attributes:
        id: Primary key, referenced by ArchivoTramite.id_tramites_metadatos.
        id_tramite: FK to Tramite.
        id_etapa: Stage the snapshot was submitted under.
        titulo: Thesis title.
        abstract: Abstract text.
        keywords: Comma-separated keywords.
        presupuesto: Declared budget.
        conclusiones: Conclusions; only kept from stage 11 onwards.
        activo: True for the governing snapshot.
        created_at: Insertion timestamp.
    """

    __tablename__ = "tbl_tramites_metadatos"
    __table_args__ = (
        # At most one governing snapshot per trámite
        Index(
            "uq_tbl_tramites_metadatos_activo",
            "id_tramite",
            unique=True,
            postgresql_where=text("activo"),
            sqlite_where=text("activo = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_tramite = Column(Integer, ForeignKey("tramite.id"), nullable=False, index=True)
    id_etapa = Column(Integer, nullable=False)
    titulo = Column(String(1000), nullable=False)
    abstract = Column(Text, nullable=False)
    keywords = Column(String(1000), nullable=False)
    presupuesto = Column(Numeric(12, 2), nullable=False)
    conclusiones = Column(Text, nullable=True)
    activo = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class MetadatosDictamenBorrador(Base):
    """Stage-14 metadata attached to specific dictamen documents.

    Keyed by ``(id_tramite, id_tipo_archivo)`` and versioned like
    TramiteMetadatos.  Only the Acta (type 15) carries meeting time/place.

    Attributes:
        id: Primary key.
        id_tramite: FK to Tramite.
        id_tipo_archivo: FK to TipoArchivo.
        etapa: Stage the row was written from (always 14).
        fecha_documento: Date printed on the document.
        hora_reunion: Meeting time (type 15 only).
        lugar_reunion: Meeting place (type 15 only).
        activo: True for the governing row.
        created_at: Insertion timestamp.
    """

    __tablename__ = "tabla_metadatos_dictamen_borrador"
    __table_args__ = (
        Index(
            "uq_tabla_metadatos_dictamen_borrador_activo",
            "id_tramite",
            "id_tipo_archivo",
            unique=True,
            postgresql_where=text("activo"),
            sqlite_where=text("activo = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_tramite = Column(Integer, ForeignKey("tramite.id"), nullable=False, index=True)
    id_tipo_archivo = Column(Integer, ForeignKey("dic_tipo_archivo.id"), nullable=False)
    etapa = Column(Integer, nullable=False)
    fecha_documento = Column(String(20), nullable=True)
    hora_reunion = Column(String(20), nullable=True)
    lugar_reunion = Column(String(300), nullable=True)
    activo = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
