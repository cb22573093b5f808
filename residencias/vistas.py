"""Vistas derivadas del índice conciliado: filtros, agrupación y resumen.

Funciones puras; se recalculan completas tras cada carga o edición.
"""
from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional

from .agenda import suggested_prep_date
from .domain import FLAG_FIELDS, ChecklistEntry, Site
from .errors import ValidationFailure
from .fechas import DIAS_LABORABLES, parse_iso, week_start as week_start_of, weekday_name

MODE_ALL = 'all'
MODE_PREP_TODAY = 'prepToday'
MODE_DELIVER_TODAY = 'deliverToday'
MODES = (MODE_ALL, MODE_PREP_TODAY, MODE_DELIVER_TODAY)

STATUS_DONE = 'completo'
STATUS_IN_PROGRESS = 'en_progreso'
STATUS_PENDING = 'pendiente'


class Summary(NamedTuple):
    prepared: int
    due_for_delivery: int
    pending: int

    def to_dict(self):
        return self._asdict()


def is_complete(entry: Optional[ChecklistEntry]) -> bool:
    if entry is None:
        return False
    return all(getattr(entry, f) for f in FLAG_FIELDS)


def entry_status(entry: Optional[ChecklistEntry]) -> str:
    """Estado para colorear la tarjeta: completo, en progreso o pendiente."""
    if is_complete(entry):
        return STATUS_DONE
    if entry is not None and any(getattr(entry, f) for f in FLAG_FIELDS):
        return STATUS_IN_PROGRESS
    return STATUS_PENDING


def delivers_today(entry: Optional[ChecklistEntry], today) -> bool:
    return entry is not None and entry.deliver_date == parse_iso(today)


def is_prep_today(site: Site, entry: Optional[ChecklistEntry], today, week_start=None) -> bool:
    """La fecha explícita manda sobre la sugerida; ``prep_weekdays`` suma aparte."""
    today = parse_iso(today)
    week = parse_iso(week_start) if week_start is not None else week_start_of(today)
    if entry is not None and entry.prep_date is not None:
        by_date = entry.prep_date == today
    else:
        by_date = suggested_prep_date(week, site.delivery_weekday) == today
    return by_date or weekday_name(today) in site.prep_weekdays


def filter_sites(index, catalog, mode=MODE_ALL, query='', today=None, week_start=None) -> List[Site]:
    if mode not in MODES:
        raise ValidationFailure(f'Modo de filtro desconocido: {mode!r}')
    needle = (query or '').strip().lower()
    sites = [s for s in catalog if needle in s.name.lower()] if needle else list(catalog)
    if mode == MODE_ALL:
        return sites
    if today is None:
        raise ValidationFailure('Los filtros de hoy requieren la fecha de hoy')
    if mode == MODE_PREP_TODAY:
        return [s for s in sites if is_prep_today(s, index.get(s.id), today, week_start)]
    return [s for s in sites if delivers_today(index.get(s.id), today)]


def _workload_key(site: Site):
    patients = site.patients if site.patients is not None else 0
    floors = site.floors if site.floors is not None else 1
    return (-patients, -floors, site.name)


def group_by_delivery_weekday(sites) -> Dict[str, List[Site]]:
    """Cinco cubetas (lunes a viernes), mayor carga de trabajo primero."""
    groups: Dict[str, List[Site]] = {d: [] for d in DIAS_LABORABLES}
    for site in sites:
        if site.delivery_weekday in groups:
            groups[site.delivery_weekday].append(site)
    for day in DIAS_LABORABLES:
        groups[day].sort(key=_workload_key)
    return groups


def summary(catalog, index) -> Summary:
    prepared = due = pending = 0
    for site in catalog:
        entry = index.get(site.id)
        if is_complete(entry):
            prepared += 1
        else:
            pending += 1
        if entry is not None and entry.deliver_date is not None:
            due += 1
    return Summary(prepared, due, pending)
