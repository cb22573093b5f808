"""Estado de una sesión de vista semanal.

``WeekBoard`` es el único dueño del índice conciliado durante la sesión. Las
funciones puras (``reconcile``, ``apply_patch``, vistas) reciben y devuelven el
índice; el tablero sólo lo reemplaza cuando la llamada a la base terminó bien.
"""
from __future__ import annotations

import logging

from . import fechas
from .conciliacion import merge_created, reconcile
from .domain import WORKLOAD_FLOORS, coerce_patch
from .edicion import apply_patch, replace_entry
from .errors import SiteNotFound, ValidationFailure
from .vistas import (MODE_ALL, entry_status, delivers_today, filter_sites,
                     group_by_delivery_weekday, summary)

log = logging.getLogger(__name__)


class WeekBoard:
    def __init__(self, site_store, checklist_store, week=None):
        self.sites = site_store
        self.checklist = checklist_store
        self.week_start = fechas.week_start(week)
        self.catalog = []
        self.index = {}
        self.created = []
        self._generation = 0

    def move_to(self, reference):
        """Cambia de semana; cualquier carga en curso queda obsoleta."""
        week = fechas.week_start(reference)
        if week == self.week_start:
            return False
        self.week_start = week
        self.catalog = []
        self.index = {}
        self.created = []
        self._generation += 1
        return True

    def roll_over(self, today=None):
        """Si el calendario cruzó a otra semana, mover el tablero y recargar."""
        if self.move_to(today if today is not None else fechas.today()):
            self.load()
            return True
        return False

    def load(self):
        """Lee catálogo y semana, crea las filas que falten y arma el índice.

        Devuelve ``False`` si mientras tanto el tablero cambió de semana; en ese
        caso el resultado se descarta y el estado no se toca.
        """
        generation, week = self._generation, self.week_start
        catalog = self.sites.list()
        result = reconcile(catalog, self.checklist.list_for_week(week), week)
        index, created = result.index, []
        if result.to_create:
            created = self.checklist.upsert_many(result.to_create, overwrite=False)
            index = merge_created(index, created)
            log.info('Semana %s: %d filas de checklist creadas', week.isoformat(), len(created))
        if generation != self._generation:
            log.info('Carga de la semana %s descartada (semana actual %s)',
                     week.isoformat(), self.week_start.isoformat())
            return False
        self.catalog, self.index, self.created = catalog, index, created
        return True

    def refresh_catalog(self):
        """Relee sólo el catálogo (para editar carga sin tocar el checklist)."""
        self.catalog = self.sites.list()
        return self.catalog

    def site(self, site_id):
        for s in self.catalog:
            if s.id == site_id:
                return s
        raise SiteNotFound(f'Residencia {site_id} no encontrada')

    def edit(self, site_id, payload):
        """Aplica un parche parcial (JSON) a la fila de la semana y la persiste."""
        self.site(site_id)
        row = apply_patch(self.index, site_id, self.week_start, coerce_patch(payload))
        canonical = self.checklist.upsert_one(row)
        self.index = replace_entry(self.index, canonical)
        return canonical

    def update_workload(self, site_id, values):
        self.site(site_id)
        updated = self.sites.update(site_id, values)
        self.catalog = [updated if s.id == site_id else s for s in self.catalog]
        return updated

    def bump_workload(self, site_id, field, delta):
        """Incrementa o decrementa pacientes/plantas; el mínimo se respeta."""
        if field not in WORKLOAD_FLOORS:
            raise ValidationFailure(f'Campo de carga desconocido: {field!r}')
        current = getattr(self.site(site_id), field)
        return self.update_workload(site_id, {field: current + delta})

    def view(self, mode=MODE_ALL, query='', today=None):
        today = fechas.parse_iso(today) if today is not None else fechas.today()
        visible = filter_sites(self.index, self.catalog, mode, query, today, self.week_start)
        groups = group_by_delivery_weekday(visible)

        def card(site):
            entry = self.index.get(site.id)
            return {
                'site': site.to_dict(),
                'entry': entry.to_dict() if entry else None,
                'status': entry_status(entry),
                'delivers_today': delivers_today(entry, today),
            }

        return {
            'week_start': self.week_start.isoformat(),
            'today': today.isoformat(),
            'mode': mode,
            'query': query or '',
            'groups': {day: [card(s) for s in sites] for day, sites in groups.items()},
            'summary': summary(self.catalog, self.index).to_dict(),
        }
