from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy.orm import validates
from . import db
from .domain import ChecklistEntry, Site
from .fechas import DIAS_LABORABLES, NOMBRES_DIA, normalize_weekday, weekday_ordinal


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='user')
    failed_attempts = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_locked(self):
        return bool(self.locked_until and self.locked_until > datetime.utcnow())

    def register_failed_attempt(self, max_attempts=5, lock_minutes=15):
        self.failed_attempts = (self.failed_attempts or 0) + 1
        if self.failed_attempts >= max_attempts:
            self.locked_until = datetime.utcnow() + timedelta(minutes=lock_minutes)


class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    action = db.Column(db.String(100), index=True)
    entity_type = db.Column(db.String(50))
    entity_id = db.Column(db.String(50))
    ip = db.Column(db.String(45))
    meta = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User', backref='audit_events')


# --- Catálogo de residencias ---
class Residencia(db.Model):
    __tablename__ = 'residencia'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False, index=True)
    delivery_weekday = db.Column(db.String(12), nullable=False, index=True)  # Lunes..Viernes
    biweekly = db.Column(db.Boolean, default=False)
    biweekly_offset = db.Column(db.Integer, default=0)
    # Días extra de preparación separados por coma: "Lunes,Jueves"
    prep_weekdays = db.Column(db.String(120), default='')
    patients = db.Column(db.Integer, default=0, nullable=False)
    floors = db.Column(db.Integer, default=1, nullable=False)

    @validates('delivery_weekday')
    def _check_delivery_weekday(self, key, value):
        return DIAS_LABORABLES[weekday_ordinal(value)]

    @validates('prep_weekdays')
    def _check_prep_weekdays(self, key, value):
        if isinstance(value, str):
            value = value.split(',')
        dias = {normalize_weekday(d) for d in (value or ()) if str(d).strip()}
        return ','.join(sorted(dias, key=NOMBRES_DIA.index))

    def to_site(self):
        dias = [d.strip() for d in (self.prep_weekdays or '').split(',') if d.strip()]
        return Site(
            id=self.id,
            name=self.name,
            delivery_weekday=self.delivery_weekday,
            biweekly=bool(self.biweekly),
            biweekly_offset=self.biweekly_offset or 0,
            prep_weekdays=frozenset(dias),
            patients=self.patients if self.patients is not None else 0,
            floors=self.floors if self.floors is not None else 1,
        )


# --- Checklist semanal (una fila por residencia y semana) ---
class ChecklistItem(db.Model):
    __tablename__ = 'checklist_item'
    __table_args__ = (
        db.UniqueConstraint('site_id', 'week_start', name='uq_checklist_site_week'),
    )
    id = db.Column(db.Integer, primary_key=True)
    site_id = db.Column(db.Integer, db.ForeignKey('residencia.id'), nullable=False, index=True)
    week_start = db.Column(db.Date, nullable=False, index=True)  # siempre lunes
    weekly_changes_done = db.Column(db.Boolean, default=False, nullable=False)
    reviewed = db.Column(db.Boolean, default=False, nullable=False)  # repasado
    packaged = db.Column(db.Boolean, default=False, nullable=False)  # emblistada
    prep_date = db.Column(db.Date)
    deliver_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    residencia = db.relationship('Residencia', backref='checklist_items')

    def to_entry(self):
        return ChecklistEntry(
            id=self.id,
            site_id=self.site_id,
            week_start=self.week_start,
            weekly_changes_done=bool(self.weekly_changes_done),
            reviewed=bool(self.reviewed),
            packaged=bool(self.packaged),
            prep_date=self.prep_date,
            deliver_date=self.deliver_date,
            notes=self.notes,
            updated_at=self.updated_at,
        )
