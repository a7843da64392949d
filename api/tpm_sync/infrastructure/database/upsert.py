"""
INSERT nativo con soporte ON CONFLICT según el dialecto de la sesión.

PostgreSQL en producción, SQLite en tests y desarrollo local; ambos
soportan ON CONFLICT ... DO UPDATE ... WHERE y RETURNING.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    """Devuelve el `insert()` del dialecto para poder usar on_conflict_do_update."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert no soportado para el dialecto '{dialect}'")
