"""
### Slice Operation
Slicing corresponds to the `limit` and `skip` keys of a Mango query.

* `limit` would limit the number of documents returned
* `skip` (or its LoopBack alias, `offset`) would shift the "window" a number of documents

```python
MangoQuery(schema).query(limit=100, skip=200)
```

Without a `limit`, all matching documents are fetched, page by page.

Values: can be a number, or `None`.
"""

from .base import MangoQueryHandlerBase, validate_non_negative_int
from ..bag import ModelSchema
from ..exc import InvalidQueryError


class MangoLimit(MangoQueryHandlerBase):
    """ Limits and offsets

        Handles three keys:
        * 'limit': None, or int
        * 'skip': None, or int
        * 'offset': an alias for 'skip'
    """

    query_object_section_name = 'limit'

    def __init__(self, schema: ModelSchema, max_items=None):
        """ Init a limit

        :param schema: The schema of the model
        :param max_items: The maximum number of documents that can be loaded with this query.
            The user can never go any higher than that, and this value is forced onto every query.
        """
        super(MangoLimit, self).__init__(schema)

        # Config
        self.max_items = max_items
        assert self.max_items is None or self.max_items > 0

        # On input
        self.skip = None
        self.limit = None

    def input_prepare_query_object(self, query_object):
        """ Alter Query Object

        This handler receives up to 3 values: 'skip', 'offset', and 'limit'.
        MangoQuery only supports one key per handler: pack them as a tuple
        """
        if 'offset' in query_object:
            if query_object.get('skip') is not None:
                raise InvalidQueryError('Use either skip, or offset; not both')
            query_object['skip'] = query_object.pop('offset')

        if 'skip' in query_object or 'limit' in query_object:
            query_object['limit'] = (query_object.pop('skip', None),
                                     query_object.pop('limit', None))
            if query_object['limit'] == (None, None):
                query_object.pop('limit')  # remove it if it's actually empty

        return query_object

    def input(self, skip=None, limit=None):
        # MangoQuery gives us a tuple (skip, limit)
        if isinstance(skip, tuple):
            skip, limit = skip

        super(MangoLimit, self).input((skip, limit))

        # Validate
        skip = validate_non_negative_int('Skip', skip)
        limit = validate_non_negative_int('Limit', limit)

        # Clamp: zero means "no limit"
        skip = skip or None
        limit = limit or None

        # Max limit
        if self.max_items:
            limit = min(self.max_items, limit or self.max_items)

        self.skip = skip
        self.limit = limit
        return self

    @property
    def has_limit(self):
        """ Check whether there's a limit on this handler """
        return self.limit is not None or self.skip is not None

    def alter_query(self, query):
        if self.skip:
            query['skip'] = self.skip
        if self.limit:
            query['limit'] = self.limit
        return query

    def get_final_input_value(self):
        return dict(skip=self.skip, limit=self.limit)
