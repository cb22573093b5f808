"""Script para crear (si faltan) las tablas y las filas del checklist de una semana.

Uso básico (desde la raíz del proyecto, con el venv activado):

    python init_semana.py                      # semana actual
    python init_semana.py --semana 2024-06-05  # semana que contiene esa fecha
    python init_semana.py --seed               # además carga el catálogo de ejemplo

Pensado para cron el domingo por la noche o el lunes temprano. Es idempotente:
las filas que ya existen no se duplican ni se sobrescriben.
"""

import argparse
from residencias import create_app
from residencias.residencias_data import seed_residencias
from residencias.semana import WeekBoard
from residencias.stores import ChecklistStore, SiteStore


def main():
    parser = argparse.ArgumentParser(description="Prepara el checklist semanal de residencias")
    parser.add_argument('--semana', help='Cualquier fecha de la semana (YYYY-MM-DD); por defecto hoy')
    parser.add_argument('--seed', action='store_true', help='Cargar residencias de ejemplo si faltan')
    args = parser.parse_args()

    app = create_app({'TESTING': False})
    with app.app_context():
        if args.seed:
            print(f"Residencias nuevas: {seed_residencias()}")
        board = WeekBoard(SiteStore(), ChecklistStore(), week=args.semana)
        board.load()
        print(f"Semana {board.week_start.isoformat()}: {len(board.created)} filas creadas, "
              f"{len(board.index)} residencias en total")


if __name__ == '__main__':
    main()
