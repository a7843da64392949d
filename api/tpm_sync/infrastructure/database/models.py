"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean, Float, Index
from sqlalchemy.sql import func

from tpm_sync.infrastructure.database.session import Base
from tpm_sync.shared.constants.project_constants import ApiSource, ProjectStatus


class ProjectModel(Base):
    """
    Proyecto de traducción.

    Mezcla columnas del usuario (status, asignación, notas, facturación) con
    columnas propiedad del sync SAP. sap_subproject_id es la clave de
    idempotencia: único y nulo para los proyectos creados a mano.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)

    # Columnas del usuario
    name = Column(String(500), nullable=False)
    status = Column(String(50), nullable=False, default=ProjectStatus.ACTIVE.value)
    translator = Column(String(255), nullable=True)
    instructions = Column(Text, nullable=True)
    interim_deadline = Column(DateTime(timezone=True), nullable=True)
    words = Column(Integer, nullable=True)
    lines = Column(Integer, nullable=True)
    short = Column(Boolean, nullable=False, default=False)
    paid = Column(Boolean, nullable=False, default=False)
    invoiced = Column(Boolean, nullable=False, default=False)

    # Columnas compartidas (el sync las escribe en proyectos SAP)
    language_in = Column(String(20), nullable=True)
    language_out = Column(String(20), nullable=True)
    initial_deadline = Column(DateTime(timezone=True), nullable=True)
    final_deadline = Column(DateTime(timezone=True), nullable=True)
    system = Column(String(20), nullable=True)

    # Columnas SAP
    api_source = Column(String(50), nullable=False, default=ApiSource.MANUAL.value, index=True)
    sap_subproject_id = Column(String(255), nullable=True, unique=True)
    sap_parent_id = Column(String(50), nullable=True)
    sap_parent_name = Column(String(500), nullable=True)
    sap_account = Column(String(255), nullable=True)
    sap_instructions = Column(Text, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_projects_api_source_sap_subproject_id", "api_source", "sap_subproject_id"),
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name}, sap_subproject_id={self.sap_subproject_id})>"


class SapApiRateLimitModel(Base):
    """Último listado SAP pedido por cada usuario (cooldown del listado)."""

    __tablename__ = "sap_api_rate_limits"

    user_id = Column(String(255), primary_key=True)
    last_fetch_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SapApiRateLimit(user_id={self.user_id}, last_fetch_at={self.last_fetch_at})>"
