"""
Pydantic v2 schemas for correction submissions (write side).

The metadata blocks arrive as JSON strings inside a multipart form and are
validated with ``model_validate_json`` by the router before they reach the
service layer.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class MetadatosCorreccion(BaseModel):
    """Descriptive fields resubmitted with every correction."""

    titulo: str = Field(..., min_length=1, max_length=1000)
    abstract: str = Field(..., min_length=1)
    keywords: str = Field(..., min_length=1, max_length=1000)
    presupuesto: Decimal = Field(..., ge=0)
    conclusiones: str | None = Field(
        default=None,
        description="Solo se conserva en las etapas 11, 14 y 16.",
    )


class MetadatosDictamen(BaseModel):
    """Auxiliary metadata for dictamen documents uploaded at E14."""

    fecha_documento: str | None = None
    hora_reunion: str | None = Field(default=None, description="Solo Acta (tipo 15).")
    lugar_reunion: str | None = Field(default=None, description="Solo Acta (tipo 15).")


class MetadatosDictamenItem(BaseModel):
    tipo_id: int = Field(..., alias="tipoId", ge=1)
    metadatos: MetadatosDictamen

    model_config = ConfigDict(populate_by_name=True)


class ArchivoRegistradoResponse(BaseModel):
    """A file row created by the submission."""

    id: int
    id_tipo_archivo: int
    nombre_archivo: str
    ruta: str
    activo: bool

    model_config = ConfigDict(from_attributes=True)


class CorreccionResponse(BaseModel):
    """Result of ``enviar-correccion`` and ``completar-primera-e16``."""

    tramite_id: int
    etapa: int
    metadatos_id: int
    numero_correccion: int | None = Field(
        default=None,
        description="Ordinal de la corrección; None para la primera presentación.",
    )
    archivos_subidos: int = Field(..., ge=0)
    archivos: list[ArchivoRegistradoResponse] = Field(default_factory=list)
    log_registrado: bool = Field(
        ..., description="False si el registro de auditoría no pudo guardarse."
    )
