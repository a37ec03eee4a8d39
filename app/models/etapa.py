"""Etapa and TipoArchivo models: read-only dictionaries."""

from sqlalchemy import Column, Integer, String

from app.database import Base


class Etapa(Base):
    """One step of the thesis review pipeline (E1 … E16).

    Attributes:
        id: Stage number, used directly as the primary key.
        nombre: Short stage name.
        descripcion: Optional longer description.
    """

    __tablename__ = "etapa"

    id = Column(Integer, primary_key=True, autoincrement=False)
    nombre = Column(String(200), nullable=False)
    descripcion = Column(String(500), nullable=True)


class TipoArchivo(Base):
    """Catalogue of artifact types a submitter can upload.

    Attributes:
        id: Type id, embedded in the generated filename.
        nombre: Display name, e.g. "Proyecto de tesis".
        descripcion: Optional help text shown next to the upload field.
    """

    __tablename__ = "dic_tipo_archivo"

    id = Column(Integer, primary_key=True, autoincrement=False)
    nombre = Column(String(200), nullable=False)
    descripcion = Column(String(500), nullable=True)
