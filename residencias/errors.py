"""Errores del motor de checklist semanal.

Cada fallo es terminal para la operación que lo produjo: no hay reintentos y el
índice en memoria sólo se actualiza cuando la llamada a la base termina bien.
"""


class ChecklistError(Exception):
    """Base de todos los errores del motor."""


class FetchFailure(ChecklistError):
    """Falló la lectura del catálogo o del checklist de la semana."""


class PersistFailure(ChecklistError):
    """Falló la creación o actualización de filas (upsert)."""


class ValidationFailure(ChecklistError, ValueError):
    """Dato inválido detectado antes de llegar a la base."""


class SiteNotFound(ChecklistError, LookupError):
    """La residencia no existe en el catálogo cargado."""
