"""Acceso a base de datos para el motor de checklist.

``SiteStore`` y ``ChecklistStore`` traducen filas SQLAlchemy a las entidades de
``domain`` y envuelven cualquier ``SQLAlchemyError`` en ``FetchFailure`` o
``PersistFailure`` (tras hacer rollback), de modo que la capa web sólo maneja
errores del dominio.

Los upserts usan siempre la clave natural (residencia, semana), nunca el id:
así dos sesiones que concilian la misma semana a la vez no duplican filas.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .domain import EDITABLE_FIELDS, clamp_workload
from .errors import FetchFailure, PersistFailure, SiteNotFound, ValidationFailure
from .fechas import parse_iso
from .models import ChecklistItem, Residencia

log = logging.getLogger(__name__)

CONFLICT_KEY = ('site_id', 'week_start')
_UPDATABLE = EDITABLE_FIELDS + ('updated_at',)
# Dialectos con INSERT ... ON CONFLICT; el resto (p.ej. mssql) usa el camino genérico
_NATIVE_INSERT = {'sqlite': sqlite.insert, 'postgresql': postgresql.insert}
_CHUNK = 50


def _row_values(entry, now):
    values = {name: getattr(entry, name) for name in CONFLICT_KEY + EDITABLE_FIELDS}
    values['week_start'] = parse_iso(values['week_start'])
    values['updated_at'] = now
    return values


def _site_or_none(row):
    try:
        return row.to_site()
    except ValidationFailure as e:
        log.warning('Residencia %s (%s) ignorada, datos inválidos: %s', row.id, row.name, e)
        return None


class SiteStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def list(self):
        """Catálogo ordenado por nombre.

        Una fila con días mal cargados se omite (con aviso en el log) para que
        el resto de residencias siga disponible.
        """
        try:
            rows = self.session.execute(select(Residencia).order_by(Residencia.name)).scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise FetchFailure('No se pudo leer el catálogo de residencias') from e
        sites = (_site_or_none(r) for r in rows)
        return [s for s in sites if s is not None]

    def update(self, site_id, fields):
        """Actualiza pacientes/plantas (ya recortados a su mínimo)."""
        values = clamp_workload(fields)
        try:
            row = self.session.get(Residencia, site_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise FetchFailure(f'No se pudo leer la residencia {site_id}') from e
        if row is None:
            raise SiteNotFound(f'Residencia {site_id} no encontrada')
        try:
            for name, value in values.items():
                setattr(row, name, value)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistFailure(f'No se pudo actualizar la residencia {site_id}') from e
        site = _site_or_none(row)
        if site is None:
            raise FetchFailure(f'La residencia {site_id} tiene días de entrega inválidos')
        return site


class ChecklistStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def list_for_week(self, week_start):
        week = parse_iso(week_start)
        stmt = select(ChecklistItem).where(ChecklistItem.week_start == week).order_by(ChecklistItem.site_id)
        try:
            rows = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise FetchFailure(f'No se pudo leer el checklist de la semana {week.isoformat()}') from e
        return [r.to_entry() for r in rows]

    def upsert_many(self, entries, overwrite=True):
        """Inserta o actualiza por (residencia, semana) y devuelve las filas canónicas.

        Con ``overwrite=False`` una fila ya existente se deja intacta; es el modo
        de la creación automática, que nunca debe pisar lo que otra sesión ya
        guardó.
        """
        entries = list(entries)
        if not entries:
            return []
        now = datetime.utcnow()
        # Última aparición gana si llega dos veces la misma clave
        values = list({(v['site_id'], v['week_start']): v
                       for v in (_row_values(e, now) for e in entries)}.values())
        try:
            insert = _NATIVE_INSERT.get(self.session.get_bind().dialect.name)
            if insert is not None:
                for i in range(0, len(values), _CHUNK):
                    self._upsert_native(insert, values[i:i + _CHUNK], overwrite)
            else:
                self._upsert_generic(values, overwrite)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistFailure(f'No se pudieron guardar {len(values)} filas del checklist') from e
        log.debug('Upsert checklist: %d filas (overwrite=%s)', len(values), overwrite)
        return self._canonical([(v['site_id'], v['week_start']) for v in values])

    def upsert_one(self, entry):
        rows = self.upsert_many([entry], overwrite=True)
        if not rows:
            raise PersistFailure(f'La base no devolvió la fila de la residencia {entry.site_id}')
        return rows[0]

    def _upsert_native(self, insert, values, overwrite):
        stmt = insert(ChecklistItem).values(values)
        if overwrite:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(CONFLICT_KEY),
                set_={name: stmt.excluded[name] for name in _UPDATABLE},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(CONFLICT_KEY))
        self.session.execute(stmt)

    def _upsert_generic(self, values, overwrite):
        for vals in values:
            key = {k: vals[k] for k in CONFLICT_KEY}
            row = self.session.execute(select(ChecklistItem).filter_by(**key)).scalar_one_or_none()
            if row is None:
                try:
                    with self.session.begin_nested():
                        self.session.add(ChecklistItem(**vals))
                    continue
                except IntegrityError:
                    # otra sesión insertó la misma clave entre la lectura y el insert
                    row = self.session.execute(select(ChecklistItem).filter_by(**key)).scalar_one()
            if overwrite:
                for name in _UPDATABLE:
                    setattr(row, name, vals[name])

    def _canonical(self, keys):
        by_week = {}
        for site_id, week in keys:
            by_week.setdefault(week, set()).add(site_id)
        found = {}
        try:
            for week, site_ids in by_week.items():
                stmt = (select(ChecklistItem)
                        .where(ChecklistItem.week_start == week, ChecklistItem.site_id.in_(site_ids))
                        .execution_options(populate_existing=True))
                for row in self.session.execute(stmt).scalars():
                    found[(row.site_id, row.week_start)] = row.to_entry()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise FetchFailure('No se pudieron releer las filas guardadas del checklist') from e
        return [found[k] for k in keys if k in found]
