"""
Deactivate-then-insert versioning shared by every versioned table.

``TramiteMetadatos``, ``MetadatosDictamenBorrador`` and ``ArchivoTramite``
all keep history the same way: rows are never deleted, the governing row
is the one with ``activo=True`` and a new version switches the previous
one off.  The helpers here only ``flush``; committing (or rolling back)
is left to the calling service so that both halves land in the same
transaction.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def deactivate_active(db: Session, model: type[ModelT], keys: dict[str, Any]) -> int:
    """Switch off every active row of *model* matching *keys*.

    Args:
        db: Active SQLAlchemy session.
        model: Mapped class with an ``activo`` boolean column.
        keys: Column name → value equality filters, e.g.
            ``{"id_tramite": 12, "id_tipo_archivo": 3}``.

    Returns:
        Number of rows deactivated.
    """
    query = db.query(model).filter(model.activo.is_(True))
    for column, value in keys.items():
        query = query.filter(getattr(model, column) == value)
    updated = query.update({model.activo: False}, synchronize_session="fetch")
    logger.debug(
        "deactivate_active: %s %s -> %d filas", model.__tablename__, keys, updated
    )
    return updated


def insert_active(
    db: Session, model: type[ModelT], keys: dict[str, Any], payload: dict[str, Any]
) -> ModelT:
    """Add a new active row built from *keys* and *payload* and flush it."""
    row = model(**keys, **payload, activo=True)
    db.add(row)
    db.flush()
    return row


def supersede_rows(
    db: Session, model: type[ModelT], keys: dict[str, Any], payload: dict[str, Any]
) -> ModelT:
    """Deactivate the current version for *keys* and insert the next one.

    Returns:
        The new row, flushed (its ``id`` is populated) but not committed.
    """
    deactivate_active(db, model, keys)
    return insert_active(db, model, keys, payload)
