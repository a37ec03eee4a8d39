"""
Shared pytest fixtures for the observaciones test suite.

Provides:
    - engine: in-memory SQLite engine with every table created (per test)
    - db: SQLAlchemy session bound to ``engine``
    - catalogos: etapa and dic_tipo_archivo rows
    - usuario / tramite: one active submitter and their trámite
    - store: in-memory ``ObjectStore`` that can be told to fail
    - client: FastAPI ``TestClient`` with ``get_db`` / ``get_object_store`` overridden
    - auth_headers: Bearer header for ``usuario``
    - add_observacion / add_log: row factories
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.database import Base, get_db
from app.main import app as fastapi_app
from app.models.etapa import Etapa, TipoArchivo
from app.models.log_accion import LogAccion
from app.models.observacion import Observacion
from app.models.tramite import Tramite
from app.models.usuario import Usuario
from app.services.file_storage import get_object_store
from app.utils.exceptions import StorageError
from app.utils.security import create_access_token

_BASE_FECHA = datetime(2025, 3, 1, 9, 0, 0)


class FakeObjectStore:
    """In-memory object store; ``fail_put`` / ``fail_delete`` simulate outages."""

    backend = "memory"

    def __init__(self, bucket: str = "tramites-documentos") -> None:
        self.bucket = bucket
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_put = False
        self.fail_delete = False

    def put(self, path: str, data: bytes, content_type: str) -> None:
        if self.fail_put:
            raise StorageError(f"Error al subir el archivo: bucket no disponible ({path})")
        self.objects[path] = data

    def delete(self, path: str) -> None:
        if self.fail_delete:
            raise StorageError(f"Error al eliminar el archivo: {path}")
        self.deleted.append(path)
        self.objects.pop(path, None)


# ── DB fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalogos(db):
    """Seed the stage and file-type dictionaries."""
    for etapa_id in (1, 2, 3, 4, 5, 11, 13, 14, 16):
        db.add(Etapa(id=etapa_id, nombre=f"Etapa {etapa_id}"))
    for tipo_id in range(1, 22):
        db.add(TipoArchivo(id=tipo_id, nombre=f"Tipo {tipo_id}", descripcion=None))
    db.commit()


@pytest.fixture
def usuario(db, catalogos) -> Usuario:
    user = Usuario(
        correo="tesista@unamad.edu.pe",
        nombres="Ana",
        apellidos="Quispe Huamán",
        activo=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def revisor(db, catalogos) -> Usuario:
    user = Usuario(
        correo="revisor@unamad.edu.pe",
        nombres="Luis",
        apellidos="Mamani",
        activo=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def tramite(db, usuario) -> Tramite:
    t = Tramite(codigo_proyecto="PRY-2025-001", id_etapa_actual=2, id_usuario=usuario.id)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


# ── Row factories ────────────────────────────────────────────────────────────


@pytest.fixture
def add_observacion(db, tramite, revisor):
    counter = {"n": 0}

    def _add(etapa: int, visto_bueno: int = 0, texto: str = "Corregir redacción") -> Observacion:
        counter["n"] += 1
        obs = Observacion(
            id_tramite=tramite.id,
            id_etapa=etapa,
            id_usuario=revisor.id,
            id_rol=3,
            servicio="Revisión de proyecto",
            visto_bueno=visto_bueno,
            observacion=texto,
            fecha=_BASE_FECHA + timedelta(minutes=counter["n"]),
        )
        db.add(obs)
        db.commit()
        db.refresh(obs)
        return obs

    return _add


@pytest.fixture
def add_log(db, tramite, usuario):
    def _add(etapa: int, id_accion: int, mensaje: str = "accion") -> LogAccion:
        log = LogAccion(
            id_tramite=tramite.id,
            id_etapa=etapa,
            id_accion=id_accion,
            id_usuario=usuario.id,
            mensaje=mensaje,
        )
        db.add(log)
        db.commit()
        return log

    return _add


# ── HTTP fixtures ────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def client(db, store):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_object_store] = lambda: store

    yield TestClient(fastapi_app)

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(usuario) -> dict[str, str]:
    token = create_access_token({"sub": str(usuario.id)})
    return {"Authorization": f"Bearer {token}"}
