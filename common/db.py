from __future__ import annotations

from typing import Iterator, Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings
from .schema import SUPPORTED_BACKENDS, metadata


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(database_url: str) -> Engine:
    """Crea el engine para la URL dada.

    SQLite en memoria necesita una única conexión compartida entre hilos
    (los endpoints síncronos de FastAPI corren en un threadpool).

    Backends sin índices filtrados (MySQL, Oracle...) se rechazan: el índice
    de alertas abiertas quedaría como UNIQUE total y un nivel ya reconocido
    no podría volver a alertarse tras un reset.
    """
    backend = make_url(database_url).get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend '{backend}': "
            f"expected one of {', '.join(SUPPORTED_BACKENDS)}"
        )

    if backend == "sqlite":
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, future=True, **kwargs)

    return create_engine(database_url, pool_pre_ping=True, pool_recycle=300, future=True)


def get_engine(settings: Settings | None = None) -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    settings = settings or get_settings()
    # No loguear la URL completa: puede contener credenciales.
    logger.info("[DB] Crear engine dialect=%s", settings.database_url.split(":", 1)[0])

    _engine = build_engine(settings.database_url)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(), autocommit=False, autoflush=False, future=True
        )
    return _session_factory


def configure(engine: Engine) -> sessionmaker:
    """Reemplaza el engine global (tests, scripts)."""
    global _engine, _session_factory

    _engine = engine
    _session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    return _session_factory


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Seguro de llamar múltiples veces."""
    logger.info("[DB] Ensuring schema exists")
    metadata.create_all(engine)


def get_db() -> Iterator[Session]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
