"""Fechas sugeridas de preparación y salida a partir del día fijo de entrega."""
from __future__ import annotations

from datetime import date

from .fechas import add_days, normalize_weekday, weekday_ordinal

# Días respecto al lunes de la semana. Las entregas del lunes se preparan el
# viernes anterior (cruza a la semana previa).
PREP_OFFSETS = {
    'Lunes': -3,
    'Martes': 0,
    'Miércoles': 0,
    'Jueves': 1,
    'Viernes': 2,
}


def suggested_deliver_date(week_start, weekday) -> date:
    return add_days(week_start, weekday_ordinal(weekday))


def suggested_prep_date(week_start, weekday) -> date:
    weekday_ordinal(weekday)  # rechaza sábado/domingo
    return add_days(week_start, PREP_OFFSETS[normalize_weekday(weekday)])
