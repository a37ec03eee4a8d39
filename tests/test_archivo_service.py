"""
File versioning tests.

Test blocks:
  1. Pure helpers (letters, extensions, names)
  2. ingest: letters, deactivation, stored objects
  3. ingest failures: missing extension, storage, record insert + compensation
  4. relink_unmodified
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.models.archivo_tramite import ArchivoTramite
from app.schemas.correccion import MetadatosCorreccion
from app.services import archivo_service, metadatos_service, versionado
from app.services.archivo_service import ArchivoEntrada
from app.utils.exceptions import MissingExtension, RecordPersistError, StorageError


@pytest.fixture
def snapshot(db, tramite):
    return metadatos_service.supersede(
        db,
        tramite.id,
        2,
        MetadatosCorreccion(
            titulo="Calidad del agua en Tambopata",
            abstract="Resumen",
            keywords="agua, calidad",
            presupuesto=Decimal("1500.00"),
        ),
    )


def _archivo(tipo_id: int, filename: str = "proyecto.pdf", content: bytes = b"%PDF-1.4") -> ArchivoEntrada:
    return ArchivoEntrada(tipo_id=tipo_id, filename=filename, content=content)


def _rows(db, tramite_id: int, tipo_id: int) -> list[ArchivoTramite]:
    return (
        db.query(ArchivoTramite)
        .filter(ArchivoTramite.id_tramite == tramite_id, ArchivoTramite.id_tipo_archivo == tipo_id)
        .order_by(ArchivoTramite.id)
        .all()
    )


# ── 1. Pure helpers ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "previos, letra",
    [(0, "A"), (1, "B"), (2, "C"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA")],
)
def test_version_letter(previos, letra):
    assert archivo_service.version_letter(previos) == letra


def test_file_extension_is_lowercased():
    assert archivo_service.file_extension("Informe Final.PDF") == "pdf"
    assert archivo_service.file_extension("anexos.tar.docx") == "docx"


@pytest.mark.parametrize("filename", ["informe", ".bashrc", ""])
def test_file_extension_missing(filename):
    with pytest.raises(MissingExtension):
        archivo_service.file_extension(filename)


def test_build_nombre_and_ruta():
    nombre = archivo_service.build_nombre_archivo("B", 3, "PRY 2025-001", "pdf")

    assert nombre == "B3-PRY_2025-001.pdf"
    assert archivo_service.build_ruta(42, nombre) == "tramite-42/B3-PRY_2025-001.pdf"


def test_project_code_cannot_leave_tramite_prefix():
    nombre = archivo_service.build_nombre_archivo("A", 1, "PRY 2025/../01", "pdf")

    assert nombre == "A1-PRY_2025..01.pdf"
    assert archivo_service.build_ruta(7, nombre).count("/") == 1


# ── 2. ingest ────────────────────────────────────────────────────────────────


def test_ingest_three_versions_only_last_active(db, store, tramite, snapshot):
    for _ in range(3):
        archivo_service.ingest(
            db, store, tramite.id, 2, tramite.codigo_proyecto, snapshot.id, _archivo(1)
        )

    rows = _rows(db, tramite.id, 1)
    assert [r.nombre_archivo for r in rows] == [
        "A1-PRY-2025-001.pdf",
        "B1-PRY-2025-001.pdf",
        "C1-PRY-2025-001.pdf",
    ]
    assert [r.activo for r in rows] == [False, False, True]
    assert set(store.objects) == {f"tramite-{tramite.id}/{r.nombre_archivo}" for r in rows}


def test_ingest_records_storage_columns(db, store, tramite, snapshot):
    registro = archivo_service.ingest(
        db, store, tramite.id, 2, tramite.codigo_proyecto, snapshot.id,
        _archivo(2, "turnitin.PDF", b"12345"),
    )

    assert registro.id is not None
    assert registro.ruta == f"tramite-{tramite.id}/A2-PRY-2025-001.pdf"
    assert registro.storage == "memory"
    assert registro.bucket == "tramites-documentos"
    assert registro.id_etapa == 2
    assert registro.id_tramites_metadatos == snapshot.id
    assert registro.tamanio_bytes == 5
    assert registro.max_size == 4


def test_letters_are_per_tipo(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    registro = archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(2))

    assert registro.nombre_archivo.startswith("A2-")


def test_second_active_version_is_rejected_by_database(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    duplicado = {
        "nombre_archivo": "A1-PRY-2025-001.pdf",
        "storage": "local",
        "bucket": "tramites-documentos",
        "ruta": f"tramite-{tramite.id}/A1-PRY-2025-001.pdf",
        "id_etapa": 2,
    }

    with pytest.raises(IntegrityError):
        versionado.insert_active(
            db, ArchivoTramite, {"id_tramite": tramite.id, "id_tipo_archivo": 1}, duplicado
        )
    db.rollback()


# ── 3. ingest failures ───────────────────────────────────────────────────────


def test_missing_extension_keeps_previous_active(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))

    with pytest.raises(MissingExtension):
        archivo_service.ingest(
            db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1, "proyecto")
        )

    rows = _rows(db, tramite.id, 1)
    assert len(rows) == 1
    assert rows[0].activo is True


def test_storage_failure_aborts_without_row(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    store.fail_put = True

    with pytest.raises(StorageError):
        archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))

    rows = _rows(db, tramite.id, 1)
    assert len(rows) == 1
    assert rows[0].activo is True


def test_insert_failure_deletes_stored_object(db, store, tramite, snapshot, monkeypatch):
    def _fail(*args, **kwargs):
        raise SQLAlchemyError("insert rechazado")

    monkeypatch.setattr(archivo_service, "insert_active", _fail)

    with pytest.raises(RecordPersistError) as exc_info:
        archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(3))

    ruta = f"tramite-{tramite.id}/A3-PRY-2025-001.pdf"
    assert exc_info.value.storage_path == ruta
    assert exc_info.value.compensated is True
    assert exc_info.value.code == "RECORD_PERSIST_ERROR"
    assert store.deleted == [ruta]
    assert store.objects == {}
    assert _rows(db, tramite.id, 3) == []


def test_insert_failure_reports_failed_compensation(db, store, tramite, snapshot, monkeypatch):
    def _fail(*args, **kwargs):
        raise SQLAlchemyError("insert rechazado")

    monkeypatch.setattr(archivo_service, "insert_active", _fail)
    store.fail_delete = True

    with pytest.raises(RecordPersistError) as exc_info:
        archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(3))

    assert exc_info.value.compensated is False
    assert f"tramite-{tramite.id}/A3-PRY-2025-001.pdf" in store.objects


# ── 4. relink_unmodified ─────────────────────────────────────────────────────


def _nuevo_snapshot(db, tramite):
    return metadatos_service.supersede(
        db,
        tramite.id,
        2,
        MetadatosCorreccion(
            titulo="Título corregido",
            abstract="Resumen corregido",
            keywords="agua",
            presupuesto=Decimal("1800.00"),
        ),
    )


def test_relink_skips_replaced_types(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(2))
    nuevo = _nuevo_snapshot(db, tramite)

    actualizados = archivo_service.relink_unmodified(db, tramite.id, [1], nuevo.id)

    assert actualizados == 1
    activos = {r.id_tipo_archivo: r.id_tramites_metadatos for r in archivo_service.list_activos(db, tramite.id)}
    assert activos == {1: snapshot.id, 2: nuevo.id}


def test_relink_with_empty_list_moves_every_active_file(db, store, tramite, snapshot):
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(1))
    archivo_service.ingest(db, store, tramite.id, 2, "PRY-2025-001", snapshot.id, _archivo(2))
    nuevo = _nuevo_snapshot(db, tramite)

    actualizados = archivo_service.relink_unmodified(db, tramite.id, [], nuevo.id)

    assert actualizados == 2
    assert all(r.id_tramites_metadatos == nuevo.id for r in archivo_service.list_activos(db, tramite.id))
    inactivo = _rows(db, tramite.id, 1)[0]
    assert inactivo.activo is False
    assert inactivo.id_tramites_metadatos == snapshot.id
