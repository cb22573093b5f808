"""Aritmética de fechas para la semana laboral (lunes a viernes).

Todas las funciones trabajan con ``datetime.date`` (fechas de calendario local,
sin hora) y aceptan también cadenas ISO ``YYYY-MM-DD``.
"""
from __future__ import annotations

import unicodedata
from datetime import date, datetime, timedelta

from .errors import ValidationFailure

DIAS_LABORABLES = ('Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes')
# Índice = date.weekday() (lunes=0 .. domingo=6); no depende del locale del sistema
NOMBRES_DIA = DIAS_LABORABLES + ('Sábado', 'Domingo')


def _plain(label):
    txt = unicodedata.normalize('NFKD', str(label).strip().lower())
    return ''.join(c for c in txt if not unicodedata.combining(c))


_POR_CLAVE = {_plain(d): d for d in NOMBRES_DIA}


def parse_iso(value) -> date:
    """Convierte ``'2024-06-03'`` (o un date/datetime) en ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError as e:
        raise ValidationFailure(f'Fecha inválida, use formato YYYY-MM-DD: {value!r}') from e


def to_iso(value):
    if value is None:
        return None
    return parse_iso(value).isoformat()


def today() -> date:
    return date.today()


def week_start(reference=None) -> date:
    """Lunes de la semana que contiene ``reference`` (hoy si se omite).

    El domingo pertenece a la semana que empezó seis días antes; nunca se
    adelanta al lunes siguiente.
    """
    d = today() if reference is None else parse_iso(reference)
    return d - timedelta(days=d.weekday())


def add_days(value, n: int) -> date:
    return parse_iso(value) + timedelta(days=n)


def normalize_weekday(label) -> str:
    """Devuelve la etiqueta canónica ('Miércoles') para variantes como 'miercoles'."""
    canon = _POR_CLAVE.get(_plain(label)) if label is not None else None
    if canon is None:
        raise ValidationFailure(f'Día de la semana desconocido: {label!r}')
    return canon


def weekday_ordinal(weekday) -> int:
    """Lunes=0 .. Viernes=4. Sábado y domingo no pertenecen al dominio."""
    canon = normalize_weekday(weekday)
    if canon not in DIAS_LABORABLES:
        raise ValidationFailure(f'{canon} no es un día laborable')
    return DIAS_LABORABLES.index(canon)


def weekday_name(value) -> str:
    return NOMBRES_DIA[parse_iso(value).weekday()]
