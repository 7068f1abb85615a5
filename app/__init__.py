"""
Natours - Application Factory
"""
import json
import logging
import os

import click
from flask import Flask, current_app, g, request
from dotenv import load_dotenv

from app.extensions import db, babel
from app.errors import register_error_handlers
from app.pipeline import install_pipeline
from app.routes import register_blueprints
from app.services.email import init_mailer
from config.settings import config


def get_locale():
    """Determine the best locale for the user."""
    languages = current_app.config['LANGUAGES']
    lang = request.cookies.get('babel_translation')
    if lang in languages:
        return lang
    return request.accept_languages.best_match(languages)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def create_app(config_name=None):
    """Application Factory."""
    load_dotenv()

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    babel.init_app(app, locale_selector=get_locale)
    init_mailer(app)

    # Global stages, then routes, then the error normalizer
    install_pipeline(app)

    # Context processor for templates
    @app.context_processor
    def inject_conf_var():
        return dict(get_locale=get_locale, current_user=g.get('user'))

    register_blueprints(app)
    register_error_handlers(app)

    # CLI Commands
    register_cli_commands(app)

    return app


def register_cli_commands(app):
    """Register CLI commands."""

    @app.cli.command("init-db")
    def init_db_command():
        """Creates database tables."""
        db.create_all()
        click.echo("Initialized the database.")

    @app.cli.command("import-data")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def import_data_command(path):
        """Imports users, tours and reviews from a JSON file."""
        from app.services.seed import import_data
        with open(path, encoding='utf-8') as fh:
            stats = import_data(json.load(fh))
        click.echo(
            f"Imported {stats['users']} users, {stats['tours']} tours, {stats['reviews']} reviews."
        )

    @app.cli.command("delete-data")
    def delete_data_command():
        """Deletes every user, tour and review."""
        from app.services.seed import delete_data
        delete_data()
        click.echo("Data successfully deleted.")
