"""Routes package - Blueprint registration."""
from app.routes.views import views_bp
from app.routes.auth import auth_bp
from app.routes.users import users_bp
from app.routes.tours import tours_bp
from app.routes.reviews import reviews_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(views_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(tours_bp)
    app.register_blueprint(reviews_bp)
