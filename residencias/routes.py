from flask import Blueprint, request, redirect, url_for, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from . import db, csrf
from .models import User, AuditLog
from .forms import LoginForm, SemanaFiltroForm, SemanaForm
from .errors import FetchFailure, PersistFailure, SiteNotFound, ValidationFailure
from .semana import WeekBoard
from .stores import ChecklistStore, SiteStore
from .vistas import MODE_ALL, filter_sites
from datetime import datetime
from functools import wraps

web_bp = Blueprint('web', __name__)
api_bp = Blueprint('api', __name__)
APP_VERSION = '2024.06.03-semana'


def api_auth_required(view):
    """Sesión iniciada, o cabecera X-API-KEY si hay API_TOKEN configurado."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        token = current_app.config.get('API_TOKEN')
        if token and request.headers.get('X-API-KEY') == token:
            return view(*args, **kwargs)
        if not current_user.is_authenticated:
            return jsonify({'error': 'unauthorized'}), 401
        return view(*args, **kwargs)
    return wrapped


def log_event(action, user_id=None, entity_type=None, entity_id=None, meta=None, ip=None):
    try:
        event = AuditLog(user_id=user_id, action=action, entity_type=entity_type, entity_id=str(entity_id) if entity_id else None, meta=meta, ip=ip)
        db.session.add(event)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('No se pudo registrar el evento %s', action)


def _user_id():
    return current_user.id if current_user.is_authenticated else None


@web_bp.route('/')
def index():
    return jsonify({'app': 'residencias', 'version': APP_VERSION,
                    'usuario': current_user.username if current_user.is_authenticated else None})


@web_bp.route('/__health')
def health():
    try:
        rules = sorted([r.rule for r in current_app.url_map.iter_rules()])
    except Exception:
        rules = []
    return jsonify({
        'version': APP_VERSION,
        'routes_contains_semana': any('semana' in r for r in rules),
        'total_rules': len(rules),
    })


@web_bp.route('/login', methods=['GET', 'POST'])
def login():
    form = LoginForm()
    if request.method == 'GET':
        return jsonify({'csrf_token': generate_csrf()})
    if not form.validate_on_submit():
        return jsonify({'error': 'Usuario y contraseña requeridos', 'fields': form.errors}), 400
    user = User.query.filter_by(username=form.username.data).first()
    if not user:
        return jsonify({'error': 'Credenciales inválidas'}), 401
    if user.is_locked():
        return jsonify({'error': 'Cuenta bloqueada temporalmente. Intenta más tarde.'}), 423
    if not user.check_password(form.password.data):
        user.register_failed_attempt()
        db.session.commit()
        log_event('login_failed', user.id, ip=request.remote_addr)
        return jsonify({'error': 'Credenciales inválidas'}), 401
    user.failed_attempts = 0
    user.locked_until = None
    user.last_login = datetime.utcnow()
    db.session.commit()
    login_user(user)
    log_event('login_success', user.id, ip=request.remote_addr)
    return redirect(url_for('web.index'))


@web_bp.route('/logout')
@login_required
def logout():
    user_id = current_user.id
    logout_user()
    log_event('logout', user_id, ip=request.remote_addr)
    return redirect(url_for('web.index'))


# ---------------- Checklist semanal (JSON) ----------------
@api_bp.errorhandler(ValidationFailure)
def _validation_failure(e):
    return jsonify({'error': str(e)}), 400


@api_bp.errorhandler(SiteNotFound)
def _site_not_found(e):
    return jsonify({'error': str(e)}), 404


@api_bp.errorhandler(FetchFailure)
@api_bp.errorhandler(PersistFailure)
def _storage_failure(e):
    current_app.logger.error('%s: %s', type(e).__name__, e, exc_info=e.__cause__ or e)
    return jsonify({'error': str(e)}), 503


def _board(semana=None):
    board = WeekBoard(SiteStore(), ChecklistStore(), week=semana)
    board.load()
    if board.created:
        log_event('checklist_autocreate', _user_id(), 'ChecklistItem',
                  meta=f'{len(board.created)} filas semana {board.week_start.isoformat()}',
                  ip=request.remote_addr)
    return board


@api_bp.route('/semana', methods=['GET'])
@api_auth_required
def api_semana():
    form = SemanaFiltroForm(request.args)
    if not form.validate():
        return jsonify({'error': 'Filtros inválidos', 'fields': form.errors}), 400
    board = _board(form.semana.data)
    return jsonify(board.view(form.modo.data, form.q.data or '', form.hoy.data))


@api_bp.route('/semana/<int:site_id>', methods=['PATCH'])
@csrf.exempt
@api_auth_required
def api_semana_editar(site_id):
    form = SemanaForm(request.args)
    if not form.validate():
        return jsonify({'error': 'Semana inválida', 'fields': form.errors}), 400
    payload = request.get_json(silent=True)
    board = _board(form.semana.data)
    entry = board.edit(site_id, payload)
    log_event('checklist_update', _user_id(), 'ChecklistItem', entry.id,
              meta=','.join(sorted(payload)), ip=request.remote_addr)
    return jsonify(entry.to_dict())


@api_bp.route('/residencias', methods=['GET'])
@api_auth_required
def api_residencias_list():
    sites = filter_sites({}, SiteStore().list(), MODE_ALL, request.args.get('q', ''))
    return jsonify([s.to_dict() for s in sites])


@api_bp.route('/residencias/<int:site_id>', methods=['PATCH'])
@csrf.exempt
@api_auth_required
def api_residencia_carga(site_id):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationFailure('Se esperaba un objeto JSON con pacientes/plantas')
    site = SiteStore().update(site_id, payload)
    log_event('residencia_update', _user_id(), 'Residencia', site.id,
              meta=f'patients={site.patients} floors={site.floors}', ip=request.remote_addr)
    return jsonify(site.to_dict())


@api_bp.route('/residencias/<int:site_id>/<campo>/<accion>', methods=['POST'])
@csrf.exempt
@api_auth_required
def api_residencia_ajustar(site_id, campo, accion):
    deltas = {'mas': 1, 'menos': -1}
    if accion not in deltas:
        raise ValidationFailure(f'Acción desconocida: {accion!r} (use mas/menos)')
    board = WeekBoard(SiteStore(), ChecklistStore())
    board.refresh_catalog()
    site = board.bump_workload(site_id, campo, deltas[accion])
    log_event('residencia_update', _user_id(), 'Residencia', site.id,
              meta=f'{campo} {accion}', ip=request.remote_addr)
    return jsonify(site.to_dict())
