"""
File versioning for corrected submissions.

Each uploaded artifact goes through ``ingest`` one at a time:

1. Lock ``(tramite, tipo)`` so two submissions cannot draw the same letter.
2. Count every row ever written for the pair → version letter.
3. Deactivate the current active row of that type.
4. Build ``<letter><tipo>-<codigo>.<ext>`` under ``tramite-<id>/``.
5. Store the bytes, then insert the new active row.
6. If the insert fails, delete the stored object (best effort).

After all files are in, ``relink_unmodified`` points the untouched active
files at the new metadata snapshot.

Design notes
------------
- The lock is ``pg_advisory_xact_lock`` on PostgreSQL and is released at
  commit/rollback.  Other dialects (SQLite in tests) skip it.
- Letters continue past ``Z`` as ``AA``, ``AB``, … (spreadsheet-style), so
  a long correction history never produces a non-letter character.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.archivo_tramite import ArchivoTramite
from app.services.file_storage import ObjectStore, sanitize_filename
from app.services.versionado import deactivate_active, insert_active
from app.utils.exceptions import (
    MissingExtension,
    PersistenceError,
    RecordPersistError,
    StorageError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchivoEntrada:
    """One decoded upload handed over by the HTTP layer."""

    tipo_id: int
    filename: str
    content: bytes
    content_type: str | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def version_letter(previous_count: int) -> str:
    """Return the letter for the next version given how many already exist.

    ``0 → "A"``, ``1 → "B"``, … ``25 → "Z"``, ``26 → "AA"``.
    """
    n = previous_count + 1
    letters = ""
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def file_extension(filename: str) -> str:
    """Return the lower-case extension of *filename* without the dot.

    Raises:
        MissingExtension: If the name has no extension.
    """
    suffix = PurePosixPath(filename).suffix
    extension = suffix[1:].lower() if suffix else ""
    if not extension:
        raise MissingExtension(filename)
    return extension


def build_nombre_archivo(letra: str, tipo_id: int, codigo_proyecto: str, extension: str) -> str:
    """Return ``<letra><tipo_id>-<codigo>.<extension>``; the code is sanitized to one path segment."""
    return f"{letra}{tipo_id}-{sanitize_filename(codigo_proyecto)}.{extension}"


def build_ruta(tramite_id: int, nombre_archivo: str) -> str:
    return f"tramite-{tramite_id}/{nombre_archivo}"


def _lock_tipo(db: Session, tramite_id: int, tipo_id: int) -> None:
    """Serialize letter assignment for one ``(tramite, tipo)`` pair."""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT pg_advisory_xact_lock(:tramite_id, :tipo_id)"),
        {"tramite_id": tramite_id, "tipo_id": tipo_id},
    )


def count_historial(db: Session, tramite_id: int, tipo_id: int) -> int:
    """Count every row (active or not) ever written for the pair."""
    return (
        db.query(func.count(ArchivoTramite.id))
        .filter(
            ArchivoTramite.id_tramite == tramite_id,
            ArchivoTramite.id_tipo_archivo == tipo_id,
        )
        .scalar()
        or 0
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def ingest(
    db: Session,
    store: ObjectStore,
    tramite_id: int,
    etapa: int,
    codigo_proyecto: str,
    metadatos_id: int,
    archivo: ArchivoEntrada,
) -> ArchivoTramite:
    """Store one uploaded artifact as the new active version of its type.

    Args:
        db: Active SQLAlchemy session.
        store: Object store receiving the bytes.
        tramite_id: Owning trámite.
        etapa: Stage the submission belongs to.
        codigo_proyecto: Project code embedded in the filename.
        metadatos_id: Snapshot the new row references.
        archivo: Decoded upload.

    Returns:
        The committed ``ArchivoTramite`` row.

    Raises:
        MissingExtension: If the upload name has no extension.
        StorageError: If the object store rejects the upload.
        RecordPersistError: If the row cannot be inserted after storing.
        PersistenceError: If the history count or deactivation fails.
    """
    try:
        _lock_tipo(db, tramite_id, archivo.tipo_id)
        previos = count_historial(db, tramite_id, archivo.tipo_id)
        deactivate_active(
            db,
            ArchivoTramite,
            {"id_tramite": tramite_id, "id_tipo_archivo": archivo.tipo_id},
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "ingest: fallo preparando versión tramite=%d tipo=%d: %s",
            tramite_id, archivo.tipo_id, exc,
        )
        raise PersistenceError("Error al desactivar la versión anterior del archivo.") from exc

    try:
        extension = file_extension(archivo.filename)
    except MissingExtension:
        db.rollback()
        raise

    letra = version_letter(previos)
    nombre_archivo = build_nombre_archivo(letra, archivo.tipo_id, codigo_proyecto, extension)
    ruta = build_ruta(tramite_id, nombre_archivo)
    content_type = (
        archivo.content_type
        or mimetypes.guess_type(nombre_archivo)[0]
        or "application/octet-stream"
    )

    logger.info("ingest: subiendo %s/%s", store.bucket, ruta)
    try:
        store.put(ruta, archivo.content, content_type)
    except StorageError:
        db.rollback()
        logger.error("ingest: el almacenamiento rechazó %s", ruta)
        raise

    try:
        registro = insert_active(
            db,
            ArchivoTramite,
            keys={"id_tramite": tramite_id, "id_tipo_archivo": archivo.tipo_id},
            payload={
                "nombre_archivo": nombre_archivo,
                "storage": store.backend,
                "bucket": store.bucket,
                "ruta": ruta,
                "id_etapa": etapa,
                "id_tramites_metadatos": metadatos_id,
                "tamanio_bytes": len(archivo.content),
                "max_size": get_settings().MAX_FILE_SIZE_MB,
            },
        )
        db.commit()
        db.refresh(registro)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("ingest: fallo registrando %s en BD: %s", nombre_archivo, exc)
        compensado = True
        try:
            store.delete(ruta)
        except StorageError:
            compensado = False
            logger.exception("ingest: no se pudo limpiar %s del almacenamiento", ruta)
        raise RecordPersistError(
            "Error al registrar el archivo en la base de datos.",
            storage_path=ruta,
            compensated=compensado,
        ) from exc

    logger.info(
        "ingest: registrado %s (id=%d tramite=%d etapa=%d)",
        nombre_archivo, registro.id, tramite_id, etapa,
    )
    return registro


def relink_unmodified(
    db: Session,
    tramite_id: int,
    tipos_reemplazados: Sequence[int],
    metadatos_id: int,
) -> int:
    """Point every active file not replaced in this submission at *metadatos_id*.

    With an empty *tipos_reemplazados* every active file is relinked.

    Returns:
        Number of rows updated.

    Raises:
        PersistenceError: If the update fails.
    """
    query = db.query(ArchivoTramite).filter(
        ArchivoTramite.id_tramite == tramite_id,
        ArchivoTramite.activo.is_(True),
    )
    if tipos_reemplazados:
        query = query.filter(ArchivoTramite.id_tipo_archivo.notin_(list(tipos_reemplazados)))

    try:
        updated = query.update(
            {ArchivoTramite.id_tramites_metadatos: metadatos_id},
            synchronize_session="fetch",
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "relink_unmodified: fallo actualizando archivos tramite=%d: %s",
            tramite_id, exc,
        )
        raise PersistenceError(
            "Error al actualizar los metadatos de archivos no modificados."
        ) from exc

    logger.info(
        "relink_unmodified: tramite=%d excluidos=%s actualizados=%d -> metadatos_id=%d",
        tramite_id, list(tipos_reemplazados), updated, metadatos_id,
    )
    return updated


def list_activos(db: Session, tramite_id: int) -> list[ArchivoTramite]:
    """Return the active file of every type for a trámite, ordered by type."""
    return (
        db.query(ArchivoTramite)
        .filter(ArchivoTramite.id_tramite == tramite_id, ArchivoTramite.activo.is_(True))
        .order_by(ArchivoTramite.id_tipo_archivo)
        .all()
    )
