"""
MangoQuery is a query engine that lets you query [CouchDB](https://couchdb.apache.org/)
with LoopBack-style JSON filters.

The main use case is the interaction with the UI:
every time the UI needs some *sorting*, *filtering*, or *pagination*,
you won't have to write a single line of repetitive code!

The API user sends a filter along with the REST request,
and it's translated into a [Mango query](https://docs.couchdb.org/en/stable/api/database/find.html):

```python
mq = MangoQuery(user_schema).query(
    where={'age': {'gte': 18}, 'tags.name': 'admin'},
    order=['name DESC'],
    limit=10,
)
mq.end()
#-> {'selector': {'loopback__model__name': 'User',
#                 'age': {'$gte': 18},
#                 'tags': {'$elemMatch': {'name': 'admin'}}},
#    'sort': [{'name': 'desc'}],
#    'limit': 10}
```

Then, all pages of the result are fetched, following the store's bookmarks:

```python
docs = mq.fetch_all(CouchDBServer('http://localhost:5984/mydb').use())
```
"""

# Exceptions that are used here and there
from .exc import *

# MangoQuery needs to know about the properties of your models.
# All this is handled by the following class:
from .bag import ModelSchema, SchemaProperty

# The heart of MangoQuery are the handlers:
# that's where your filters are converted to actual Mango queries!
from . import handlers

# MangoQuery is the man that parses your Query Object and feeds it to the handlers.
from .query import MangoQuery

# Fetching: pagination over bookmarks, executors, per-request routing
from .pagination import PaginatedFind, fetch_all, sort_numeric_id
from .executor import QueryExecutor, CouchDBServer, CouchDBDatabase
from .context import QueryContext, ConnectionCache

# Settings objects for MangoQuery
from .util import MangoQuerySettingsDict


def build_selector(schema, where, model_index=None, model_selector=None, operators=None) -> dict:
    """ Build a Mango selector for a model

    :param schema: Schema of the model
    :type schema: ModelSchema
    :param where: LoopBack filter tree
    :param model_index: Name of the field that holds the model name
    :param model_selector: Custom discriminator selector, used instead of `model_index`
    :param operators: Additional operators
    :rtype: dict
    """
    return handlers.MangoFilter(schema,
                                model_index=model_index,
                                model_selector=model_selector,
                                operators=operators).build(where)


def build_sort(schema, order) -> list:
    """ Build a list of Mango sort directives for a model

    :param schema: Schema of the model
    :type schema: ModelSchema
    :param order: 'a ASC, b DESC', or ['a ASC', 'b DESC'], or None
    :rtype: list[dict]
    """
    return handlers.MangoSort(schema).build(order)
