"""ArchivoTramite model: one uploaded artifact version."""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from app.database import Base


class ArchivoTramite(Base):
    """A stored file for one ``(trámite, tipo de archivo)`` pair.

    Every upload inserts a new row; the previous active row of the same
    type is switched off.  The version letter inside ``nombre_archivo``
    (``A``, ``B``, …) is derived from the total number of rows ever written
    for the pair, so letters are never reused.

    Attributes:
        id: Primary key.
        id_tramite: FK to Tramite.
        id_tipo_archivo: FK to TipoArchivo.
        nombre_archivo: Generated name, e.g. ``"B1-P24-0153.pdf"``.
        storage: Storage backend label, e.g. ``"local"``.
        bucket: Bucket / container name.
        ruta: Object path inside the bucket, e.g. ``"tramite-12/B1-P24-0153.pdf"``.
        id_etapa: Stage the file was submitted under.
        id_tramites_metadatos: FK to the TramiteMetadatos snapshot governing it.
        activo: True for the current version.
        tamanio_bytes: Size of the stored content.
        max_size: Upload limit in MB that applied at submission time.
        created_at: Insertion timestamp.
    """

    __tablename__ = "tbl_archivos_tramites"
    __table_args__ = (
        # At most one active version per (trámite, tipo de archivo)
        Index(
            "uq_tbl_archivos_tramites_activo",
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
    nombre_archivo = Column(String(300), nullable=False)
    storage = Column(String(50), nullable=False)
    bucket = Column(String(100), nullable=False)
    ruta = Column(String(500), nullable=False)
    id_etapa = Column(Integer, nullable=False)
    id_tramites_metadatos = Column(
        Integer, ForeignKey("tbl_tramites_metadatos.id"), nullable=True
    )
    activo = Column(Boolean, default=True, nullable=False)
    tamanio_bytes = Column(BigInteger, nullable=True)
    max_size = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
