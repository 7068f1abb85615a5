"""Rendered pages - overview, tour detail, login and account."""
from flask import Blueprint, current_app, g, make_response, redirect, render_template, request, url_for
from flask_babel import gettext as _

from app.auth import is_logged_in, protect
from app.errors import NotFoundError
from app.models import Review, Tour

views_bp = Blueprint('views', __name__)


@views_bp.before_request
def load_logged_in_user():
    # /me and /submit-user-data authenticate strictly through protect
    if request.endpoint not in ('views.account', 'views.update_user_data'):
        is_logged_in()


@views_bp.route('/')
def overview():
    tours = Tour.query_visible().order_by(Tour.created_at.desc()).all()
    return render_template('overview.html', title=_('All Tours'), tours=tours)


@views_bp.route('/tour/<slug>')
def tour(slug):
    tour = Tour.query_visible().filter_by(slug=slug).first()
    if tour is None:
        raise NotFoundError(_('There is no tour with that name.'))
    reviews = Review.query.filter_by(tour_id=tour.id).order_by(Review.created_at.desc()).all()
    return render_template('tour.html', title=f'{tour.name} Tour', tour=tour, reviews=reviews)


@views_bp.route('/login')
def login():
    return render_template('login.html', title=_('Log into your account'))


@views_bp.route('/me')
@protect
def account():
    return render_template('account.html', title=_('Your account'))


@views_bp.route('/submit-user-data', methods=['POST'])
@protect
def update_user_data():
    user = g.user
    user.name = request.form.get('name', user.name)
    user.email = request.form.get('email', user.email)
    user.save()
    return render_template('account.html', title=_('Your account'), updated=True)


@views_bp.route('/set_language/<lang>')
def set_language(lang):
    if lang not in current_app.config['LANGUAGES']:
        lang = current_app.config['BABEL_DEFAULT_LOCALE']
    resp = make_response(redirect(request.referrer or url_for('views.overview')))
    resp.set_cookie('babel_translation', lang)
    return resp
