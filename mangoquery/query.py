import datetime
from copy import copy, deepcopy
from typing import List

from .bag import ModelSchema
from . import handlers
from .context import ConnectionCache, QueryContext
from .exc import InvalidQueryError
from .pagination import PaginatedFind
from .util import MangoQuerySettingsHandler


class MangoQuery(object):
    """ LoopBack-style queries against a CouchDB Mango endpoint """

    def __init__(self, schema, handler_settings=None):
        """ Init a query

        :param schema: Schema of the model to query.
            An SqlAlchemy declarative model is accepted too: its schema is derived from its columns.
        :type schema: ModelSchema | sqlalchemy.ext.declarative.DeclarativeMeta
        :param handler_settings: Settings for Query Object handlers.
            These are just plain kwargs names for every handler object's __init__ method.
            Note that you don't have to specify which object receives which kwarg:
            the `MangoQuerySettingsHandler` object does that automatically.

            To disable a handler, give `<name>_enabled=False`.

            See MangoQuerySettingsDict for the list of all settings.
        :type handler_settings: dict | MangoQuerySettingsDict | None
        """
        if not isinstance(schema, ModelSchema):
            schema = ModelSchema.for_model(schema)

        self._schema = schema
        self._handler_settings = MangoQuerySettingsHandler(dict(handler_settings or {}))

        # Get ready: Query object handlers
        self._init_query_object_handlers()

    def __copy__(self):
        """ MangoQuery can be reused: copy() it before every query() """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)

        # Copy Query Object handlers
        for name in self.HANDLER_ATTR_NAMES:
            setattr(result, name, copy(getattr(result, name)))

        return result

    @property
    def schema(self) -> ModelSchema:
        return self._schema

    def query(self, **query_object):
        """ Build a Mango query from a Query Object

        :param where: Filter tree
        :param order: Sorting spec
        :param fields: Projection spec
        :param skip: Skip documents
        :param offset: Skip documents (alias)
        :param limit: Limit documents
        :raises InvalidQueryError: unknown Query Object operations provided (extra keys)
        :raises InvalidQueryError: syntax error for any of the Query Object sections
        :rtype: MangoQuery
        """
        # Prepare Query Object
        for handler_name, handler in self._handlers():
            query_object = handler.input_prepare_query_object(query_object)

        # Check if Query Object keys are all right
        invalid_keys = set(query_object.keys()) - self.HANDLER_NAMES
        if invalid_keys:
            raise InvalidQueryError(u'Unknown Query Object operations: {}'.format(', '.join(sorted(invalid_keys))))

        # Process every field with its handler
        for handler_name, handler in self._handlers():
            handler.with_mangoquery(self)

            input_value = query_object.get(handler_name, None)

            # Disabled handlers exception
            # But only test that if there actually was any input
            if input_value is not None:
                self._handler_settings.raise_if_not_handler_enabled(self._schema.name, handler_name)

            handler.input(input_value)

        return self

    def end(self) -> dict:
        """ Get the resulting Mango query envelope

        :rtype: dict
        """
        query = {}
        for handler_name, handler in self._handlers():
            query = handler.alter_query(query)

        use_index = self._handler_settings.get('use_index')
        if use_index:
            query['use_index'] = use_index

        return query

    # Fetching

    def fetch_all(self, executor, context: QueryContext = None, raw: bool = False) -> List[dict]:
        """ Fetch all documents that match the query

        :param executor: A query executor, or a ConnectionCache to resolve one from
        :type executor: QueryExecutor | ConnectionCache
        :param context: Request context, for logging. Default: the ConnectionCache's one
        :param raw: Return documents the way the store gave them; otherwise, convert them with from_db()
        :rtype: list[dict]
        :raises DataAccessError
        """
        if isinstance(executor, ConnectionCache):
            context = context or executor.context
            executor = executor.executor_for(self._schema.name, self._handler_settings.get('db'))

        finder = PaginatedFind(executor, self._schema,
                               explain=self._handler_settings.get('explain', False),
                               context=context)
        docs = finder.fetch_all(self.end())

        if raw:
            return docs
        return [self.from_db(doc) for doc in docs]

    def count(self, executor, context: QueryContext = None) -> int:
        """ Count the documents that match the query

        Only `_id`s are fetched. Sorting and slicing of the query do not apply.
        """
        counter = copy(self)  # handlers are copied too
        counter.handler_fields.fields = ['_id']
        counter.handler_order.sort_spec = None
        counter.handler_limit.skip = counter.handler_limit.limit = None
        return len(counter.fetch_all(executor, context, raw=True))

    # Documents

    def from_db(self, doc: dict) -> dict:
        """ Convert a document from the store into a model's dict

        * `_id` becomes the identifier (a number, when the identifier is a number)
        * `_id` is dropped if the projection did not ask for the identifier
        * dates are parsed
        * the model index field is dropped

        :param doc: Document. It's not modified
        :rtype: dict
        """
        if doc is None:
            return doc
        doc = dict(doc)

        id_value = doc.pop('_id', None)
        if id_value is not None and self.handler_fields.includes_id:
            if self._schema.is_id_numeric:
                try:
                    id_value = int(id_value)
                except ValueError:
                    pass
            doc[self._schema.id_name] = id_value

        for name in self._schema.date_fields:
            if isinstance(doc.get(name), str):
                doc[name] = _parse_date(doc[name])

        doc.pop(self.handler_where.model_index, None)
        return doc

    def index_definition(self) -> dict:
        """ A Mango text index for the model

        The index covers the documents of this model only: its selector is the model discriminator.
        Create it with CouchDBDatabase.create_index()
        """
        return {
            'type': 'text',
            'name': 'lb-index-' + self._schema.name,
            'ddoc': 'lb-index-ddoc-' + self._schema.name,
            'index': {
                'default_field': {
                    'enabled': False,
                },
                'selector': deepcopy(self.handler_where.discriminator()),
            },
        }

    def __repr__(self):
        return 'MangoQuery({})'.format(self._schema.name)

    # region Query Object handlers

    _QO_HANDLER_WHERE = handlers.MangoFilter
    _QO_HANDLER_ORDER = handlers.MangoSort
    _QO_HANDLER_FIELDS = handlers.MangoProject
    _QO_HANDLER_LIMIT = handlers.MangoLimit

    HANDLER_NAMES = frozenset(('where',
                               'order',
                               'fields',
                               'limit'))
    HANDLER_ATTR_NAMES = frozenset('handler_'+name
                                   for name in HANDLER_NAMES)

    def _handlers(self):
        """ Get the list of all (handler_name, handler) """
        return (
            ('fields', self.handler_fields),
            ('where', self.handler_where),
            ('order', self.handler_order),
            ('limit', self.handler_limit),
        )

    # for IDE completion
    handler_where = None  # type: handlers.MangoFilter
    handler_order = None  # type: handlers.MangoSort
    handler_fields = None  # type: handlers.MangoProject
    handler_limit = None  # type: handlers.MangoLimit

    def _init_query_object_handlers(self):
        """ Initialize every Query Object handler """
        self.handler_where = self._init_handler('where', self._QO_HANDLER_WHERE)
        self.handler_order = self._init_handler('order', self._QO_HANDLER_ORDER)
        self.handler_fields = self._init_handler('fields', self._QO_HANDLER_FIELDS)
        self.handler_limit = self._init_handler('limit', self._QO_HANDLER_LIMIT)

        # Check settings
        self._handler_settings.raise_if_invalid_handler_settings(self)

    def _init_handler(self, handler_name, handler_cls):
        """ Init a handler, and load its settings """
        handler_settings = self._handler_settings.get_settings(handler_name, handler_cls)
        return handler_cls(self._schema, **handler_settings)

    # endregion


def _parse_date(value: str):
    """ Parse an ISO 8601 date, as JSON serializers write them. Unparseable values are left alone """
    try:
        return datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return value
