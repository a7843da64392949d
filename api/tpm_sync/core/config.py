"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Configuracion de desarrollo vs produccion:
    - ENVIRONMENT: 'development' o 'production'
    - DATABASE_URL se puede especificar completa o por componentes
    - Las credenciales SAP TPM pueden faltar en desarrollo: el servicio arranca
      igual y las rutas SAP responden con error de configuracion
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="TPM SAP Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="tpm_user")
    DATABASE_PASSWORD: str = Field(default="tpm_pass")
    DATABASE_NAME: str = Field(default="tpm_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Seguridad
    SECRET_KEY: str = Field(default="change-this-secret-key-in-production")
    ALGORITHM: str = Field(default="HS256")
    # Secreto compartido del cron (header Authorization: Bearer <CRON_SECRET>)
    CRON_SECRET: str = Field(default="")

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # SAP TPM API (OAuth 2.0 client_credentials)
    SAP_TPM_CLIENT_ID: str = Field(default="")
    SAP_TPM_CLIENT_SECRET: str = Field(default="")
    SAP_TOKEN_URL: str = Field(
        default="https://lpxtpmsub.authentication.sap.hana.ondemand.com/oauth/token"
    )
    SAP_API_BASE_URL: str = Field(
        default="https://lpxtpmsub-tpm.ingress.prod.lp.shoot.live.k8s-hana.ondemand.com"
    )
    SAP_REQUEST_TIMEOUT_S: float = Field(default=30.0)
    SAP_MAX_RETRIES: int = Field(default=3)
    SAP_RETRY_DELAY_S: float = Field(default=1.0)
    # Maximo de subproyectos consultados en paralelo dentro de un sync
    SAP_FETCH_CONCURRENCY: int = Field(default=5)

    # Cooldown por usuario para el listado de proyectos SAP
    SAP_RATE_LIMIT_MINUTES: int = Field(default=5)
    # Antiguedad a partir de la cual una copia local se considera desactualizada
    SAP_STALE_AFTER_HOURS: int = Field(default=24)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    @computed_field
    @property
    def sap_configured(self) -> bool:
        """Indica si hay credenciales SAP TPM configuradas."""
        return bool(self.SAP_TPM_CLIENT_ID and self.SAP_TPM_CLIENT_SECRET)

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuración
settings = Settings()
