"""
### Where Operation
Filtering corresponds to the `selector` of a Mango query.

Example of filtering:

```python
MangoQuery(schema).query(where={
    # all conditions are AND-ed together
    'age': {'between': [18, 25]},  # age 18..25
    'sex': 'female',  # sex = "female"
})
```

#### Boolean Operators

* `{ or: [ {..criteria..}, .. ] }`  - any is true
* `{ and: [ {..criteria..}, .. ] }` - all are true
* `{ nor: [ {..criteria..}, .. ] }` - none is true

#### Models sharing a database

Documents of many models live in one database. Every document carries the name of its model
in a special field (`loopback__model__name` by default), and every selector is restricted to it:

```python
{'loopback__model__name': 'User', 'age': {'$gte': 18}}
```

A model may declare a custom `model_selector` instead: it is used as is.

#### Identifiers

The identifier property is stored as the document `_id`, which is always a string:
`{id: 10}` becomes `{_id: '10'}`.

#### Nested fields

Dotted paths reach into nested objects: `{'address.city': 'Paris'}`.
When a segment of the path is an array, `$elemMatch` is inserted (see `paths.py`).
"""

from collections.abc import Mapping
from copy import deepcopy
from typing import Tuple

from .base import MangoQueryHandlerBase
from .operators import OperatorTranslator
from .paths import resolve_array_path, unfold_path, merge_into
from ..bag import ModelSchema
from ..exc import InvalidQueryError


#: The field that tells which model a document belongs to
DEFAULT_MODEL_INDEX = 'loopback__model__name'


class MangoFilter(MangoQueryHandlerBase):
    """ Selector Builder

        Converts a LoopBack `where` filter tree into a Mango selector.
    """

    query_object_section_name = 'where'

    # Boolean operators: LoopBack name => Mango name
    _boolean_operators = {
        'and': '$and',
        'or': '$or',
        'nor': '$nor',
    }

    #: The condition injected when a text pattern is used without an `_id` constraint
    PATTERN_ID_CONDITION = {'$gt': None}

    def __init__(self, schema: ModelSchema, model_index=None, model_selector=None, operators=None):
        """ Init a selector builder

        :param schema: The schema of the model
        :param model_index: Name of the field that holds the model name in every document.
            Default: 'loopback__model__name'
        :param model_selector: A custom selector fragment that tells documents of this model apart.
            When given, it's used verbatim instead of the `model_index` equality.
        :param operators: Additional operators: {name: callable(operand) -> dict}
        :type operators: dict[str, Callable]
        """
        super(MangoFilter, self).__init__(schema)

        # Settings
        self.model_index = model_index or DEFAULT_MODEL_INDEX
        self.model_selector = model_selector
        self.translator = OperatorTranslator(operators)

        if self.model_selector is not None and not isinstance(self.model_selector, Mapping):
            raise ValueError(model_selector)

        # On input
        #: The compiled selector
        self.selector = None

    def input(self, where):
        super(MangoFilter, self).input(where)
        self.selector = self.build(where)
        return self

    def discriminator(self) -> dict:
        """ The selector fragment that restricts a query to documents of this model """
        if self.model_selector is not None:
            return deepcopy(dict(self.model_selector))
        return {self.model_index: self.schema.name}

    def build(self, where) -> dict:
        """ Build a complete selector: the discriminator, and the filter merged into it

        When the filter uses a key of the discriminator, the two are AND-ed together instead:
        the filter can never replace the discriminator.

        :param where: LoopBack filter tree, or None
        :rtype: dict
        :raises InvalidQueryError
        """
        discriminator = self.discriminator()
        if where is None or not isinstance(where, Mapping):
            return discriminator

        selector, has_pattern = self._build_selector(where, {})

        # The store refuses text patterns without an indexed range condition
        if has_pattern and '_id' not in selector and '_id' not in discriminator:
            selector['_id'] = dict(self.PATTERN_ID_CONDITION)

        if not selector:
            return discriminator
        if discriminator.keys() & selector.keys():
            return {'$and': [discriminator, selector]}

        discriminator.update(selector)
        return discriminator

    def _build_selector(self, where: Mapping, selector: dict) -> Tuple[dict, bool]:
        """ Merge the conditions from `where` into `selector`

        :return: (selector, whether any text pattern was used)
        """
        has_pattern = False

        for key, condition in where.items():
            # Boolean expressions: { or: [ {..}, {..} ] }
            if key in self._boolean_operators:
                mango_key = self._boolean_operators[key]
                if isinstance(condition, (list, tuple)):
                    children = []
                    for child in condition:
                        if not isinstance(child, Mapping):
                            raise InvalidQueryError('{}: every item of `{}` must be an object'
                                                    .format(self.query_object_section_name, key))
                        # Sub-selectors do not carry the discriminator: it's only put at the top
                        child_selector, child_has_pattern = self._build_selector(child, {})
                        children.append(child_selector)
                        has_pattern = has_pattern or child_has_pattern
                    condition = children
                selector[mango_key] = condition
                continue

            # A field
            field, condition = self._rename_id(key, condition)
            condition, leaf_has_pattern = self._compile_condition(field, condition)
            has_pattern = has_pattern or leaf_has_pattern

            # Array paths get $elemMatch, dotted paths are unfolded into nested objects
            resolved = resolve_array_path(field, self.schema)
            if '.' in resolved:
                merge_into(selector, unfold_path(resolved, condition))
            else:
                selector[resolved] = condition

        return selector, has_pattern

    def _rename_id(self, field: str, condition):
        """ The identifier is `_id`, and it's always a string """
        if field != self.schema.id_name:
            return field, condition

        if condition is not None and not isinstance(condition, (Mapping, list, tuple)):
            condition = str(condition)
        return '_id', condition

    def _compile_condition(self, field: str, condition) -> Tuple[object, bool]:
        """ Translate the operators of a condition

        :return: (Mango condition, whether a text pattern was used)
        """
        # Plain value: equality
        if not isinstance(condition, Mapping):
            return condition, False

        # { op: operand, [options: 'i'] }
        options = condition.get('options')
        compiled = {}
        has_pattern = False
        for op, operand in condition.items():
            if op == 'options':
                continue
            mango_op, is_pattern = self.translator.translate(op, operand, options)
            compiled.update(mango_op)
            has_pattern = has_pattern or is_pattern

        return compiled, has_pattern

    def alter_query(self, query):
        query['selector'] = self.selector if self.input_received else self.build(None)
        return query

    def get_final_input_value(self):
        return self.selector
