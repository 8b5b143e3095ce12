"""
Authentication forms using Flask-WTF.
Accepts form posts or JSON bodies, with CSRF protection.
"""

from flask_wtf import FlaskForm
from wtforms import PasswordField
from wtforms.validators import DataRequired, Length


class PinLoginForm(FlaskForm):
    """Admin login form with a single PIN field."""

    pin = PasswordField('PIN Admin', validators=[
        DataRequired(message='El PIN es requerido'),
        Length(max=64)
    ])
