"""Edición parcial de una entrada del checklist.

``apply_patch`` no toca la base: devuelve la fila completa que debe enviarse
al upsert (clave residencia + semana). Cuando la base responde con la fila
canónica, ``replace_entry`` la pliega al índice; si el upsert falla el índice
no se modifica.
"""
from __future__ import annotations

from dataclasses import replace

from .domain import EDITABLE_FIELDS, ChecklistEntry
from .errors import ValidationFailure
from .fechas import parse_iso


def apply_patch(index, site_id, week_start, fields) -> ChecklistEntry:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationFailure(f"Campos no editables: {', '.join(sorted(unknown))}")
    week = parse_iso(week_start)
    current = index.get(site_id)
    if current is None or current.week_start != week:
        current = ChecklistEntry(site_id=site_id, week_start=week)
    return replace(current, **fields)


def replace_entry(index, canonical: ChecklistEntry):
    updated = dict(index)
    updated[canonical.site_id] = canonical
    return updated
