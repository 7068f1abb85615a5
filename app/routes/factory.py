"""Generic CRUD responses shared by the resource blueprints."""
from flask import g, jsonify

from app.errors import NotFoundError, ValidationError
from app.extensions import db
from app.services.query import APIFeatures


def json_body(request):
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    return body


def get_or_404(model, doc_id, query=None):
    if query is not None:
        doc = query.filter(model.id == doc_id).first()
    else:
        doc = db.session.get(model, doc_id)
    if doc is None:
        raise NotFoundError('No document found with that ID')
    return doc


def list_response(model, query, params=None):
    features = APIFeatures(model, query, g.get('query', {}) if params is None else params).apply()
    docs = features.all()
    return jsonify({
        'status': 'success',
        'results': len(docs),
        'data': {'data': [doc.to_dict(features.fields) for doc in docs]},
    })


def one_response(doc, status_code=200):
    response = jsonify({'status': 'success', 'data': {'data': doc.to_dict()}})
    response.status_code = status_code
    return response


def deleted_response():
    return '', 204
