"""SQLAlchemy models package for the thesis observation workflow.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from app.models import ArchivoTramite, Observacion
"""

# Dictionaries and identities (no FK dependencies)
from app.models.etapa import Etapa, TipoArchivo  # noqa: F401
from app.models.usuario import Usuario  # noqa: F401

# Case
from app.models.tramite import Tramite  # noqa: F401

# Reviewer input and submitter audit trail
from app.models.observacion import Observacion  # noqa: F401
from app.models.log_accion import LogAccion  # noqa: F401

# Versioned submission data
from app.models.tramite_metadatos import (  # noqa: F401
    MetadatosDictamenBorrador,
    TramiteMetadatos,
)
from app.models.archivo_tramite import ArchivoTramite  # noqa: F401

__all__ = [
    "Etapa",
    "TipoArchivo",
    "Usuario",
    "Tramite",
    "Observacion",
    "LogAccion",
    "TramiteMetadatos",
    "MetadatosDictamenBorrador",
    "ArchivoTramite",
]
