from dataclasses import replace
from datetime import datetime

import pytest

from residencias import create_app, db
from residencias.domain import Site, clamp_workload
from residencias.errors import FetchFailure, PersistFailure, SiteNotFound
from residencias.models import Residencia, User


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'WTF_CSRF_ENABLED': False,
    })
    with app.app_context():
        admin = User(username='admin', role='admin')
        admin.set_password('secret')
        user = User(username='user', role='user')
        user.set_password('secret')
        db.session.add_all([admin, user])
        db.session.add_all([
            Residencia(name='Casa Sol', delivery_weekday='Viernes', patients=10, floors=2),
            Residencia(name='El Pinar', delivery_weekday='Martes', patients=28, floors=2),
            Residencia(name='Los Olivos', delivery_weekday='Lunes', prep_weekdays='Viernes',
                       patients=42, floors=3),
        ])
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    client.post('/login', data={'username': 'user', 'password': 'secret'})
    return client


@pytest.fixture
def site_ids(app):
    with app.app_context():
        return {r.name: r.id for r in Residencia.query.all()}


# --- Stores en memoria para probar el tablero sin base de datos ---

class FakeSiteStore:
    def __init__(self, sites):
        self.sites = {s.id: s for s in sites}
        self.fail = False

    def list(self):
        if self.fail:
            raise FetchFailure('catálogo no disponible')
        return sorted(self.sites.values(), key=lambda s: s.name)

    def update(self, site_id, fields):
        values = clamp_workload(fields)
        if site_id not in self.sites:
            raise SiteNotFound(site_id)
        self.sites[site_id] = replace(self.sites[site_id], **values)
        return self.sites[site_id]


class FakeChecklistStore:
    def __init__(self):
        self.rows = {}
        self.next_id = 1
        self.fail_reads = False
        self.fail_writes = False
        self.on_list = None
        self.writes = 0

    def list_for_week(self, week):
        if self.on_list:
            self.on_list(week)
        if self.fail_reads:
            raise FetchFailure('checklist no disponible')
        return [e for (_, w), e in self.rows.items() if w == week]

    def _store(self, entry, overwrite):
        key = (entry.site_id, entry.week_start)
        existing = self.rows.get(key)
        if existing is not None and not overwrite:
            return existing
        if existing is not None:
            row_id = existing.id
        else:
            row_id, self.next_id = self.next_id, self.next_id + 1
        row = replace(entry, id=row_id, updated_at=datetime(2024, 6, 3, 12, 0))
        self.rows[key] = row
        return row

    def upsert_many(self, entries, overwrite=True):
        if self.fail_writes:
            raise PersistFailure('sin conexión')
        self.writes += 1
        return [self._store(e, overwrite) for e in entries]

    def upsert_one(self, entry):
        return self.upsert_many([entry])[0]


@pytest.fixture
def catalog():
    return [
        Site(id='A', name='Casa Sol', delivery_weekday='Viernes', patients=10, floors=2),
        Site(id='B', name='El Pinar', delivery_weekday='Martes', patients=28, floors=2),
        Site(id='C', name='Los Olivos', delivery_weekday='Lunes', prep_weekdays={'Viernes'},
             patients=42, floors=3),
    ]


@pytest.fixture
def site_store(catalog):
    return FakeSiteStore(catalog)


@pytest.fixture
def checklist_store():
    return FakeChecklistStore()
