"""Datos estáticos auxiliares.

Catálogo de residencias de ejemplo para desarrollo (``flask seed-residencias``).
"""
from . import db
from .models import Residencia

# (nombre, día de salida, días extra de preparación, pacientes, plantas, quincenal)
RESIDENCIAS = [
    ("Casa Sol", "Viernes", "", 10, 2, False),
    ("Residencia Los Olivos", "Lunes", "Viernes", 42, 3, False),
    ("El Pinar", "Martes", "", 28, 2, False),
    ("Santa Clara", "Miércoles", "Lunes", 35, 4, False),
    ("Jardines del Río", "Jueves", "", 18, 1, True),
    ("San Rafael", "Lunes", "", 22, 2, False),
    ("Virgen del Carmen", "Miércoles", "", 12, 1, False),
]


def seed_residencias(rows=None):
    """Inserta las residencias que falten (por nombre) y devuelve cuántas creó."""
    existentes = {r.name for r in Residencia.query.with_entities(Residencia.name)}
    creadas = 0
    for nombre, dia, prep, pacientes, plantas, quincenal in (rows or RESIDENCIAS):
        if nombre in existentes:
            continue
        db.session.add(Residencia(name=nombre, delivery_weekday=dia, prep_weekdays=prep,
                                  patients=pacientes, floors=plantas, biweekly=quincenal))
        existentes.add(nombre)
        creadas += 1
    if creadas:
        db.session.commit()
    return creadas
