"""Conciliación del checklist semanal contra el catálogo de residencias.

Flujo esperado (ver ``WeekBoard.load``):

    result = reconcile(catalog, store.list_for_week(week), week)
    created = store.upsert_many(result.to_create, overwrite=False)
    index = merge_created(result.index, created)

``reconcile`` es una función pura: con las mismas entradas devuelve siempre el
mismo ``to_create``. Una vez persistidas y releídas esas filas, ``to_create``
queda vacío.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, NamedTuple

from .agenda import suggested_deliver_date, suggested_prep_date
from .domain import ChecklistEntry, Site
from .fechas import parse_iso

ChecklistIndex = Dict[object, ChecklistEntry]


class Reconciliation(NamedTuple):
    index: ChecklistIndex
    to_create: List[ChecklistEntry]


def default_entry(site: Site, week_start) -> ChecklistEntry:
    """Entrada nueva con las fechas sugeridas y todas las banderas en falso."""
    week = parse_iso(week_start)
    return ChecklistEntry(
        site_id=site.id,
        week_start=week,
        prep_date=suggested_prep_date(week, site.delivery_weekday),
        deliver_date=suggested_deliver_date(week, site.delivery_weekday),
    )


def reconcile(catalog: Iterable[Site], persisted: Iterable[ChecklistEntry], week_start) -> Reconciliation:
    week = parse_iso(week_start)
    catalog = list(catalog)
    known = {s.id for s in catalog}
    index: ChecklistIndex = {}
    for entry in persisted:
        # Filas de otra semana o de residencias fuera del catálogo no entran al índice
        if entry.week_start != week or entry.site_id not in known:
            continue
        index[entry.site_id] = entry
    to_create = [default_entry(s, week) for s in catalog if s.id not in index]
    return Reconciliation(index, to_create)


def merge_created(index: ChecklistIndex, created: Iterable[ChecklistEntry]) -> ChecklistIndex:
    merged = dict(index)
    for entry in created:
        merged[entry.site_id] = entry
    return merged
