from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, DateField, SubmitField, PasswordField
from wtforms.validators import DataRequired, Optional, Length
from .vistas import MODE_ALL, MODE_PREP_TODAY, MODE_DELIVER_TODAY


MODO_CHOICES = [(MODE_ALL, 'Todas'), (MODE_PREP_TODAY, 'Preparar hoy'), (MODE_DELIVER_TODAY, 'Sale hoy')]


class LoginForm(FlaskForm):
    username = StringField('Usuario', validators=[DataRequired()])
    password = PasswordField('Contraseña', validators=[DataRequired()])
    submit = SubmitField('Ingresar')


class SemanaForm(FlaskForm):
    """Semana elegida en la query string (cualquier día de esa semana)."""
    class Meta:
        csrf = False

    semana = DateField('Semana', validators=[Optional()])


class SemanaFiltroForm(SemanaForm):
    """Filtros de la vista semanal."""
    hoy = DateField('Hoy', validators=[Optional()])
    q = StringField('Buscar', validators=[Optional(), Length(max=200)])
    modo = SelectField('Mostrar', choices=MODO_CHOICES, default=MODE_ALL)
