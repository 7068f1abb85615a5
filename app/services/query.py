"""Filtering, sorting, field limiting and pagination for list endpoints.

Query string grammar, using API (camelCase) field names::

    ?difficulty=easy&price[lt]=1500&sort=-ratingsAverage,price&fields=name,price&page=2&limit=10
"""
import operator
import re
from datetime import datetime

from app.errors import ValidationError

EXCLUDED_PARAMS = ('page', 'sort', 'limit', 'fields')
OPERATORS = {
    'gte': operator.ge,
    'gt': operator.gt,
    'lte': operator.le,
    'lt': operator.lt,
}
_PARAM_RE = re.compile(r'^(\w+)\[(gte|gt|lte|lt)\]$')

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100


def _coerce(column, value):
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    try:
        if python_type is bool:
            return str(value).lower() in ('1', 'true', 'yes')
        if python_type is datetime:
            return datetime.fromisoformat(value)
        return python_type(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {column.key}: {value}')


class APIFeatures:
    def __init__(self, model, query, params):
        self.model = model
        self.query = query
        self.params = dict(params)
        self.fields = None
        self.fields_map = getattr(model, 'API_FIELDS', {})

    def _column(self, api_name):
        attr = self.fields_map.get(api_name)
        if attr is None:
            return None
        return getattr(self.model, attr).property.columns[0]

    def filter(self):
        for key, value in self.params.items():
            if key in EXCLUDED_PARAMS:
                continue
            match = _PARAM_RE.match(key)
            name, op = match.groups() if match else (key, None)
            column = self._column(name)
            if column is None:
                continue
            if isinstance(value, list):
                values = [_coerce(column, item) for item in value]
                if op:
                    for item in values:
                        self.query = self.query.filter(OPERATORS[op](column, item))
                else:
                    self.query = self.query.filter(column.in_(values))
            elif op:
                self.query = self.query.filter(OPERATORS[op](column, _coerce(column, value)))
            else:
                self.query = self.query.filter(column == _coerce(column, value))
        return self

    def sort(self):
        sort_by = self.params.get('sort') or ('-createdAt' if 'createdAt' in self.fields_map else '')
        for name in filter(None, (part.strip() for part in sort_by.split(','))):
            descending = name.startswith('-')
            column = self._column(name.lstrip('-'))
            if column is None:
                continue
            self.query = self.query.order_by(column.desc() if descending else column.asc())
        if 'id' in self.fields_map:
            self.query = self.query.order_by(self._column('id').asc())
        return self

    def limit_fields(self):
        fields = self.params.get('fields')
        if fields:
            self.fields = [name.strip() for name in fields.split(',') if name.strip()]
        return self

    def paginate(self):
        try:
            page = max(int(self.params.get('page', DEFAULT_PAGE)), 1)
            limit = max(int(self.params.get('limit', DEFAULT_LIMIT)), 1)
        except (TypeError, ValueError):
            raise ValidationError('page and limit must be positive integers')
        self.query = self.query.offset((page - 1) * limit).limit(limit)
        return self

    def apply(self):
        return self.filter().sort().limit_fields().paginate()

    def all(self):
        return self.query.all()
