"""
### Order Operation

Sorting corresponds to the `sort` part of a Mango query.

An example of an order operation would look like this:

```python
MangoQuery(schema).query(order=['age DESC', 'first_name ASC'])
```

#### Syntax

* Array syntax.

    List of field names, optionally suffixed by the sort direction: `ASC` or `DESC`.
    The default is `ASC`.

    ```python
    {'order': ['a ASC', 'b DESC', 'c']}  # -> a asc, b desc, c asc
    ```

* String syntax

    The same, separated by commas:

    ```python
    {'order': 'a ASC, b DESC, c'}
    ```

The identifier is sorted by `_id`. Note that the store compares `_id`s as strings;
when the identifier is a number, the results are re-sorted numerically after they are fetched.
"""

import re
from typing import List

from .base import MangoQueryHandlerBase
from ..bag import ModelSchema
from ..exc import InvalidQueryError


# 'name DESC', 'name ASC'
_DIRECTION_RE = re.compile(r'\s+(A|DE)SC$')


class MangoSort(MangoQueryHandlerBase):
    """ Sort Builder

        * None: sort by the identifier, ascending
        * [ 'a ASC', 'b DESC', 'c' ]  - array of strings '<field>[ ASC| DESC]'
        * 'a ASC, b DESC, c' - the same, comma-separated
    """

    query_object_section_name = 'order'

    def __init__(self, schema: ModelSchema):
        super(MangoSort, self).__init__(schema)

        # On input
        #: List of sort directives: [{field: 'asc'|'desc'}]
        self.sort_spec = None

    def build(self, order) -> List[dict]:
        """ Build a list of Mango sort directives

        :param order: Order specification, or None
        :return: [{field: 'asc'|'desc'}, ...], in the order of precedence
        :raises InvalidQueryError
        """
        # Default: by the identifier
        if not order:
            order = [self.schema.id_name]

        # String syntax
        if isinstance(order, str):
            order = order.split(',')

        if not isinstance(order, (list, tuple)) or not all(isinstance(v, str) for v in order):
            raise InvalidQueryError('{name} must be either a list of strings, or a string; {type} provided.'
                                    .format(name=self.query_object_section_name, type=type(order)))

        sort = []
        for token in order:
            m = _DIRECTION_RE.search(token)
            field = _DIRECTION_RE.sub('', token).strip()
            field = self.rename_id_field(field)
            sort.append({field: 'desc' if m and m.group(1) == 'DE' else 'asc'})
        return sort

    def input(self, order):
        super(MangoSort, self).input(order)
        # No order: no sort. The store won't need a sort index.
        self.sort_spec = self.build(order) if order else None
        return self

    def alter_query(self, query):
        if not self.sort_spec:
            return query  # short-circuit
        query['sort'] = self.sort_spec
        return query

    def get_final_input_value(self):
        return self.sort_spec
