"""
### Request context

A request may be routed to a database of its own (e.g. one database per tenant).
The routing information is not global: it's a `QueryContext` given to every call,
and executors resolved with it are cached in a `ConnectionCache` that lives as long as
the request (or the session) does.

```python
connections = ConnectionCache(server, QueryContext(db='tenant-42', request_id=req.id),
                              db_switching=True)
docs = MangoQuery(schema, settings).query(where=...).fetch_all(connections)
```
"""

from typing import Dict, Iterable, Optional

from .exc import ConfigurationError
from .executor import CouchDBServer, QueryExecutor


#: The database used when neither the model nor the server name one
DEFAULT_DB_NAME = 'test'


class QueryContext:
    """ Per-call context: where to route the call, and how to tell it apart in logs """

    __slots__ = ('db', 'request_id')

    def __init__(self, db: str = None, request_id: str = None):
        """
        :param db: Database to use for this call, when database switching is enabled
        :param request_id: Identifier of the request, for logging
        """
        self.db = db
        self.request_id = request_id

    def __repr__(self):
        return '{}(db={!r}, request_id={!r})'.format(self.__class__.__name__, self.db, self.request_id)


class ConnectionCache:
    """ Resolves, and caches, a query executor for every model

        Owned by one request or session: it's not shared between contexts.
    """

    def __init__(self, server: CouchDBServer, context: QueryContext = None,
                 db_switching: bool = False, db_switching_exceptions: Iterable[str] = ()):
        """
        :param server: The server
        :param context: The context of the request
        :param db_switching: Use the context's database instead of the model's
        :param db_switching_exceptions: Databases that are never switched
        """
        self.server = server
        self.context = context or QueryContext()
        self.db_switching = db_switching
        self.db_switching_exceptions = frozenset(db_switching_exceptions)

        #: model name => executor
        self._executors = {}  # type: Dict[str, QueryExecutor]

    def resolve_db_name(self, model_db: Optional[str] = None) -> str:
        """ Pick a database for a model

        :param model_db: The model's own database setting
        :raises ConfigurationError: switching is enabled, but the context has no database
        """
        if self.db_switching and not self.context.db:
            raise ConfigurationError('No database provided in context with db_switching active')

        db_name = model_db or self.server.database or DEFAULT_DB_NAME

        if self.db_switching and db_name not in self.db_switching_exceptions:
            db_name = self.context.db
        return db_name

    def executor_for(self, model_name: str, model_db: Optional[str] = None) -> QueryExecutor:
        """ Get an executor for a model. Resolved once per model """
        try:
            return self._executors[model_name]
        except KeyError:
            self._executors[model_name] = executor = self.server.use(self.resolve_db_name(model_db))
            return executor

    def __repr__(self):
        return '{}({!r}, {!r})'.format(self.__class__.__name__, self.server, self.context)
