"""
Utilidades para manejo de fechas y horas.

Todas las fechas que entran o salen del sync se normalizan a UTC aware.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza datetime a UTC (aware).

        SQLite devuelve datetimes naive y SAP a veces envia fechas sin zona;
        en ambos casos se interpretan como UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """
        Serializa a ISO 8601 UTC con milisegundos y sufijo 'Z'.

        Ejemplo: 2024-01-05T00:00:00.000Z

        Args:
            dt: Objeto datetime

        Returns:
            str: Fecha en formato canonico
        """
        dt_utc = DateTimeUtils.ensure_utc(dt)
        return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def from_iso_string(iso_string: Optional[str]) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 a datetime UTC.

        Args:
            iso_string: String en formato ISO 8601 (acepta sufijo 'Z')

        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        if not iso_string:
            return None
        try:
            parsed = datetime.fromisoformat(str(iso_string).strip().replace("Z", "+00:00"))
            # Fechas en el borde del rango (año 1 / 9999) desbordan al pasar a UTC
            return DateTimeUtils.ensure_utc(parsed)
        except (ValueError, TypeError, OverflowError):
            return None


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return DateTimeUtils.now_utc()
