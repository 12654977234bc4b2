"""
### Fields Operation

Projection corresponds to the `fields` key of a Mango query:
only the listed fields are returned by the store.

```python
MangoQuery(schema).query(fields=['id', 'name'])
MangoQuery(schema).query(fields={'name': True, 'age': True})
```

`_id` is always fetched: results can't be paginated and converted without it.
When the identifier was not requested, it's removed from the results afterwards.
"""

from collections.abc import Mapping

from .base import MangoQueryHandlerBase
from ..exc import InvalidQueryError


class MangoProject(MangoQueryHandlerBase):
    """ Field projection

        * None: all fields
        * [ 'a', 'b' ]: only these fields
        * { a: True, b: False }: fields mapped to a truthy value
    """

    query_object_section_name = 'fields'

    def __init__(self, schema):
        super(MangoProject, self).__init__(schema)

        # On input
        #: The list of requested field names (schema names), or None
        self.fields = None

    def input(self, fields):
        super(MangoProject, self).input(fields)

        if fields is None:
            self.fields = None
        elif isinstance(fields, str):
            self.fields = [fields]
        elif isinstance(fields, Mapping):
            self.fields = [name for name, include in fields.items() if include]
        elif isinstance(fields, (list, tuple)) and all(isinstance(v, str) for v in fields):
            self.fields = list(fields)
        else:
            raise InvalidQueryError('{name} must be either a list of strings, or an object; {type} provided.'
                                    .format(name=self.query_object_section_name, type=type(fields)))

        return self

    @property
    def includes_id(self) -> bool:
        """ Was the identifier requested? """
        return not self.fields or self.schema.id_name in self.fields

    def compile_fields(self):
        """ Mango field names: the identifier is renamed, `_id` is always included """
        fields = [self.rename_id_field(name) for name in self.fields]
        if '_id' not in fields:
            fields.append('_id')
        return fields

    def alter_query(self, query):
        if self.fields:
            query['fields'] = self.compile_fields()
        return query

    def get_final_input_value(self):
        return self.fields
