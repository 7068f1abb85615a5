"""Flask extension instances, bound to the app in the factory."""
from flask_babel import Babel
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
babel = Babel()
