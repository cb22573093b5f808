from residencias import db
from residencias.models import AuditLog, ChecklistItem, Residencia


def test_semana_creates_rows_once(app, auth_client):
    resp = auth_client.get('/api/semana?semana=2024-06-05&hoy=2024-06-05')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['week_start'] == '2024-06-03'
    assert data['summary'] == {'prepared': 0, 'due_for_delivery': 3, 'pending': 3}
    [casa_sol] = data['groups']['Viernes']
    assert casa_sol['entry']['prep_date'] == '2024-06-05'
    assert casa_sol['entry']['deliver_date'] == '2024-06-07'
    auth_client.get('/api/semana?semana=2024-06-03')
    with app.app_context():
        assert ChecklistItem.query.count() == 3
        assert AuditLog.query.filter_by(action='checklist_autocreate').count() == 1


def test_semana_prep_today_filter(auth_client):
    data = auth_client.get('/api/semana?semana=2024-06-03&hoy=2024-06-05&modo=prepToday').get_json()
    names = [c['site']['name'] for cards in data['groups'].values() for c in cards]
    assert names == ['Casa Sol']


def test_semana_search(auth_client):
    data = auth_client.get('/api/semana?semana=2024-06-03&q=olivos').get_json()
    assert [c['site']['name'] for c in data['groups']['Lunes']] == ['Los Olivos']


def test_semana_invalid_filters(auth_client):
    assert auth_client.get('/api/semana?modo=ayer').status_code == 400
    assert auth_client.get('/api/semana?semana=junio').status_code == 400


def test_patch_keeps_other_fields(auth_client, site_ids):
    url = f"/api/semana/{site_ids['Casa Sol']}?semana=2024-06-03"
    assert auth_client.patch(url, json={'weekly_changes_done': True}).status_code == 200
    resp = auth_client.patch(url, json={'notes': 'sin gluten'})
    assert resp.status_code == 200
    row = resp.get_json()
    assert row['weekly_changes_done'] is True
    assert row['notes'] == 'sin gluten'
    assert row['prep_date'] == '2024-06-05'


def test_patch_marks_complete(auth_client, site_ids):
    url = f"/api/semana/{site_ids['El Pinar']}?semana=2024-06-03"
    auth_client.patch(url, json={'weekly_changes_done': True, 'reviewed': True, 'packaged': True})
    data = auth_client.get('/api/semana?semana=2024-06-03').get_json()
    assert data['summary']['prepared'] == 1
    assert data['groups']['Martes'][0]['status'] == 'completo'


def test_patch_rejects_bad_payload(auth_client, site_ids):
    url = f"/api/semana/{site_ids['Casa Sol']}?semana=2024-06-03"
    assert auth_client.patch(url, json={'week_start': '2024-06-10'}).status_code == 400
    assert auth_client.patch(url, json={'reviewed': 'si'}).status_code == 400
    assert auth_client.patch(url, data='no-json').status_code == 400


def test_patch_rejects_bad_week(auth_client, site_ids):
    resp = auth_client.patch(f"/api/semana/{site_ids['Casa Sol']}?semana=junio", json={'notes': 'x'})
    assert resp.status_code == 400
    assert 'semana' in resp.get_json()['fields']


def test_semana_survives_bad_catalog_row(app, auth_client):
    with app.app_context():
        db.session.execute(Residencia.__table__.insert().values(
            name='Finde', delivery_weekday='Sábado', prep_weekdays='', patients=1, floors=1))
        db.session.execute(Residencia.__table__.insert().values(
            name='Typo', delivery_weekday='Lunes', prep_weekdays='Juves', patients=1, floors=1))
        db.session.commit()
    resp = auth_client.get('/api/semana?semana=2024-06-03')
    assert resp.status_code == 200
    assert resp.get_json()['summary']['pending'] == 3
    names = [s['name'] for s in auth_client.get('/api/residencias').get_json()]
    assert names == ['Casa Sol', 'El Pinar', 'Los Olivos']


def test_patch_unknown_site(auth_client):
    resp = auth_client.patch('/api/semana/999?semana=2024-06-03', json={'notes': 'x'})
    assert resp.status_code == 404


def test_workload_patch_is_clamped(auth_client, site_ids):
    resp = auth_client.patch(f"/api/residencias/{site_ids['Casa Sol']}", json={'patients': -2, 'floors': 0})
    assert resp.status_code == 200
    assert (resp.get_json()['patients'], resp.get_json()['floors']) == (0, 1)


def test_workload_increment_and_decrement(auth_client, site_ids):
    base = f"/api/residencias/{site_ids['El Pinar']}"
    assert auth_client.post(f'{base}/patients/mas').get_json()['patients'] == 29
    assert auth_client.post(f'{base}/floors/menos').get_json()['floors'] == 1
    assert auth_client.post(f'{base}/floors/menos').get_json()['floors'] == 1
    assert auth_client.post(f'{base}/floors/doble').status_code == 400
    assert auth_client.post(f'{base}/name/mas').status_code == 400


def test_residencias_list(auth_client):
    names = [s['name'] for s in auth_client.get('/api/residencias?q=casa').get_json()]
    assert names == ['Casa Sol']
    names = [s['name'] for s in auth_client.get('/api/residencias', query_string={'q': '  PINAR '}).get_json()]
    assert names == ['El Pinar']
