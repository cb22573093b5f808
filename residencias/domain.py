"""Entidades del motor: residencia (catálogo) y entrada semanal del checklist.

Son estructuras inmutables; las funciones del motor devuelven copias nuevas
(``dataclasses.replace``) en lugar de modificar las existentes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, FrozenSet, Optional

from .errors import ValidationFailure
from .fechas import DIAS_LABORABLES, normalize_weekday, parse_iso, to_iso, weekday_ordinal

FLAG_FIELDS = ('weekly_changes_done', 'reviewed', 'packaged')
DATE_FIELDS = ('prep_date', 'deliver_date')
EDITABLE_FIELDS = FLAG_FIELDS + DATE_FIELDS + ('notes',)

# Mínimos de los campos de carga de trabajo
WORKLOAD_FLOORS = {'patients': 0, 'floors': 1}


@dataclass(frozen=True)
class Site:
    id: Any
    name: str
    delivery_weekday: str
    biweekly: bool = False
    biweekly_offset: int = 0  # reservado, no lo usa ninguna derivación
    prep_weekdays: FrozenSet[str] = field(default_factory=frozenset)
    patients: int = 0
    floors: int = 1

    def __post_init__(self):
        # la salida siempre cae entre lunes y viernes
        object.__setattr__(self, 'delivery_weekday',
                           DIAS_LABORABLES[weekday_ordinal(self.delivery_weekday)])
        object.__setattr__(self, 'prep_weekdays',
                           frozenset(normalize_weekday(d) for d in (self.prep_weekdays or ())))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'delivery_weekday': self.delivery_weekday,
            'biweekly': self.biweekly,
            'biweekly_offset': self.biweekly_offset,
            'prep_weekdays': sorted(self.prep_weekdays),
            'patients': self.patients,
            'floors': self.floors,
        }


@dataclass(frozen=True)
class ChecklistEntry:
    site_id: Any
    week_start: date
    weekly_changes_done: bool = False
    reviewed: bool = False
    packaged: bool = False
    prep_date: Optional[date] = None
    deliver_date: Optional[date] = None
    notes: Optional[str] = None
    id: Optional[Any] = None
    updated_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'id': self.id,
            'site_id': self.site_id,
            'week_start': to_iso(self.week_start),
            'weekly_changes_done': self.weekly_changes_done,
            'reviewed': self.reviewed,
            'packaged': self.packaged,
            'prep_date': to_iso(self.prep_date),
            'deliver_date': to_iso(self.deliver_date),
            'notes': self.notes,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


def coerce_patch(payload) -> dict:
    """Valida y normaliza un parche parcial recibido como JSON.

    Sólo se aceptan los campos editables; las fechas vacías se convierten en
    ``None`` y las banderas deben ser booleanos reales.
    """
    if not isinstance(payload, dict):
        raise ValidationFailure('Se esperaba un objeto JSON con los campos a modificar')
    unknown = set(payload) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationFailure(f"Campos no editables: {', '.join(sorted(unknown))}")
    patch = {}
    for name, value in payload.items():
        if name in FLAG_FIELDS:
            if not isinstance(value, bool):
                raise ValidationFailure(f'{name} debe ser true/false')
            patch[name] = value
        elif name in DATE_FIELDS:
            patch[name] = parse_iso(value) if value not in (None, '') else None
        else:
            patch[name] = (str(value) if value is not None else None) or None
    return patch


def clamp_workload(values) -> dict:
    """Convierte a entero y recorta pacientes/plantas a su mínimo.

    Un valor bajo el mínimo nunca se rechaza ni se envía a la base: se ajusta.
    """
    unknown = set(values) - set(WORKLOAD_FLOORS)
    if unknown:
        raise ValidationFailure(f"Sólo se pueden editar pacientes/plantas, no: {', '.join(sorted(unknown))}")
    out = {}
    for name, value in values.items():
        floor = WORKLOAD_FLOORS[name]
        if value in (None, ''):
            value = floor
        if isinstance(value, bool):
            raise ValidationFailure(f'{name} debe ser numérico')
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise ValidationFailure(f'{name} debe ser numérico') from e
        out[name] = max(floor, number)
    return out

