"""tablas_observaciones

Crea las tablas del flujo de observaciones y correcciones: diccionarios
(etapa, dic_tipo_archivo), usuario, tramite, observaciones, log de
acciones, metadatos versionados y archivos versionados.

Revision ID: c4d2a7e19f30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c4d2a7e19f30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Diccionarios
    op.create_table(
        'etapa',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('nombre', sa.String(length=200), nullable=False),
        sa.Column('descripcion', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'dic_tipo_archivo',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('nombre', sa.String(length=200), nullable=False),
        sa.Column('descripcion', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'usuario',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.String(length=64), nullable=True),
        sa.Column('correo', sa.String(length=200), nullable=False),
        sa.Column('nombres', sa.String(length=200), nullable=True),
        sa.Column('apellidos', sa.String(length=200), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('correo'),
    )

    op.create_table(
        'tramite',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('codigo_proyecto', sa.String(length=50), nullable=False),
        sa.Column('id_etapa_actual', sa.Integer(), nullable=True),
        sa.Column('id_usuario', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_etapa_actual'], ['etapa.id']),
        sa.ForeignKeyConstraint(['id_usuario'], ['usuario.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo_proyecto'),
    )

    # Observaciones del revisor y log de acciones del tesista
    op.create_table(
        'tbl_observaciones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id_tramite', sa.Integer(), nullable=False),
        sa.Column('id_etapa', sa.Integer(), nullable=False),
        sa.Column('id_usuario', sa.Integer(), nullable=False),
        sa.Column('id_rol', sa.Integer(), nullable=True),
        sa.Column('servicio', sa.String(length=200), nullable=True),
        sa.Column('visto_bueno', sa.Integer(), nullable=False),
        sa.Column('observacion', sa.Text(), nullable=True),
        sa.Column('fecha', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_tramite'], ['tramite.id']),
        sa.ForeignKeyConstraint(['id_etapa'], ['etapa.id']),
        sa.ForeignKeyConstraint(['id_usuario'], ['usuario.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tbl_observaciones_id_tramite', 'tbl_observaciones', ['id_tramite'])

    op.create_table(
        'log_acciones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id_tramite', sa.Integer(), nullable=False),
        sa.Column('id_etapa', sa.Integer(), nullable=False),
        sa.Column('id_accion', sa.Integer(), nullable=False),
        sa.Column('id_usuario', sa.Integer(), nullable=True),
        sa.Column('mensaje', sa.String(length=500), nullable=True),
        sa.Column('fecha', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_tramite'], ['tramite.id']),
        sa.ForeignKeyConstraint(['id_usuario'], ['usuario.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_log_acciones_id_tramite', 'log_acciones', ['id_tramite'])

    # Metadatos versionados
    op.create_table(
        'tbl_tramites_metadatos',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id_tramite', sa.Integer(), nullable=False),
        sa.Column('id_etapa', sa.Integer(), nullable=False),
        sa.Column('titulo', sa.String(length=1000), nullable=False),
        sa.Column('abstract', sa.Text(), nullable=False),
        sa.Column('keywords', sa.String(length=1000), nullable=False),
        sa.Column('presupuesto', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('conclusiones', sa.Text(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_tramite'], ['tramite.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_tbl_tramites_metadatos_id_tramite', 'tbl_tramites_metadatos', ['id_tramite']
    )
    # Un solo snapshot activo por trámite
    op.create_index(
        'uq_tbl_tramites_metadatos_activo',
        'tbl_tramites_metadatos',
        ['id_tramite'],
        unique=True,
        postgresql_where=sa.text('activo'),
    )

    op.create_table(
        'tabla_metadatos_dictamen_borrador',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id_tramite', sa.Integer(), nullable=False),
        sa.Column('id_tipo_archivo', sa.Integer(), nullable=False),
        sa.Column('etapa', sa.Integer(), nullable=False),
        sa.Column('fecha_documento', sa.String(length=20), nullable=True),
        sa.Column('hora_reunion', sa.String(length=20), nullable=True),
        sa.Column('lugar_reunion', sa.String(length=300), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_tramite'], ['tramite.id']),
        sa.ForeignKeyConstraint(['id_tipo_archivo'], ['dic_tipo_archivo.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_tabla_metadatos_dictamen_borrador_id_tramite',
        'tabla_metadatos_dictamen_borrador',
        ['id_tramite'],
    )
    op.create_index(
        'uq_tabla_metadatos_dictamen_borrador_activo',
        'tabla_metadatos_dictamen_borrador',
        ['id_tramite', 'id_tipo_archivo'],
        unique=True,
        postgresql_where=sa.text('activo'),
    )

    # Archivos versionados
    op.create_table(
        'tbl_archivos_tramites',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id_tramite', sa.Integer(), nullable=False),
        sa.Column('id_tipo_archivo', sa.Integer(), nullable=False),
        sa.Column('nombre_archivo', sa.String(length=300), nullable=False),
        sa.Column('storage', sa.String(length=50), nullable=False),
        sa.Column('bucket', sa.String(length=100), nullable=False),
        sa.Column('ruta', sa.String(length=500), nullable=False),
        sa.Column('id_etapa', sa.Integer(), nullable=False),
        sa.Column('id_tramites_metadatos', sa.Integer(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('tamanio_bytes', sa.BigInteger(), nullable=True),
        sa.Column('max_size', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_tramite'], ['tramite.id']),
        sa.ForeignKeyConstraint(['id_tipo_archivo'], ['dic_tipo_archivo.id']),
        sa.ForeignKeyConstraint(['id_tramites_metadatos'], ['tbl_tramites_metadatos.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tbl_archivos_tramites_id_tramite', 'tbl_archivos_tramites', ['id_tramite'])
    # Una sola versión activa por (trámite, tipo de archivo)
    op.create_index(
        'uq_tbl_archivos_tramites_activo',
        'tbl_archivos_tramites',
        ['id_tramite', 'id_tipo_archivo'],
        unique=True,
        postgresql_where=sa.text('activo'),
    )


def downgrade() -> None:
    op.drop_index('uq_tbl_archivos_tramites_activo', table_name='tbl_archivos_tramites')
    op.drop_index('ix_tbl_archivos_tramites_id_tramite', table_name='tbl_archivos_tramites')
    op.drop_table('tbl_archivos_tramites')
    op.drop_index(
        'uq_tabla_metadatos_dictamen_borrador_activo',
        table_name='tabla_metadatos_dictamen_borrador',
    )
    op.drop_index(
        'ix_tabla_metadatos_dictamen_borrador_id_tramite',
        table_name='tabla_metadatos_dictamen_borrador',
    )
    op.drop_table('tabla_metadatos_dictamen_borrador')
    op.drop_index('uq_tbl_tramites_metadatos_activo', table_name='tbl_tramites_metadatos')
    op.drop_index('ix_tbl_tramites_metadatos_id_tramite', table_name='tbl_tramites_metadatos')
    op.drop_table('tbl_tramites_metadatos')
    op.drop_index('ix_log_acciones_id_tramite', table_name='log_acciones')
    op.drop_table('log_acciones')
    op.drop_index('ix_tbl_observaciones_id_tramite', table_name='tbl_observaciones')
    op.drop_table('tbl_observaciones')
    op.drop_table('tramite')
    op.drop_table('usuario')
    op.drop_table('dic_tipo_archivo')
    op.drop_table('etapa')
