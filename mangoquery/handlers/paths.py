"""
### Array paths

Mango compares a dotted path like `tags.name` against a nested *object*.
When `tags` is an array of objects, the condition has to be wrapped into `$elemMatch`,
otherwise nothing matches:

```python
{'tags.name': 'x'}  # tags: [{name: 'string'}]
# -> {'tags': {'$elemMatch': {'name': 'x'}}}
```

The schema tells which path segments are arrays.
When a segment can't be found in the schema, the path is left alone:
the field is simply not modeled, and Mango is given the path as is.
"""

import logging
from typing import List

from ..bag import ModelSchema

logger = logging.getLogger(__name__)

#: The marker inserted after every array segment
ELEM_MATCH = '$elemMatch'


def resolve_array_path(path: str, schema: ModelSchema) -> str:
    """ Insert `$elemMatch` after every segment of a dotted path that is an array

        Example: with `address.tags` being an array of {tag: string},

            resolve_array_path('address.tags.tag', schema)
            #-> 'address.tags.$elemMatch.tag'

        :param path: Dotted field path
        :param schema: Schema of the model
        :return: The rewritten path, or the original one if any segment is not in the schema
    """
    if not isinstance(path, str) or schema is None:
        return path

    segments = path.split('.')
    if len(segments) <= 1:
        return path  # not nested: no lookups

    new_segments = []  # type: List[str]
    current_properties = schema.properties  # properties to look the next segment up in
    array_members = None  # member shapes of the array just entered

    for segment in segments:
        # Look the segment up
        if array_members is not None:
            # Inside an array: the first member shape that declares the segment wins
            shape = next((m for m in array_members if segment in m), None)
            prop = shape[segment] if shape is not None else None
            array_members = None
        else:
            prop = current_properties.get(segment)

        # Not modeled: fail open
        if prop is None:
            logger.debug('Path %r of model %s is not resolvable at segment %r: used as is',
                         path, schema.name, segment)
            return path

        new_segments.append(segment)
        if prop.is_array:
            new_segments.append(ELEM_MATCH)
            array_members = prop.members
            current_properties = {}
        else:
            current_properties = prop.properties

    return '.'.join(new_segments)


def unfold_path(path: str, value) -> dict:
    """ Unfold a dotted path into nested dicts; the innermost key holds the value

        unfold_path('a.b.c', 1)
        #-> {'a': {'b': {'c': 1}}}

        Implemented with a stack: no recursion, whatever the depth.
    """
    keys = path.split('.')
    result = value
    while keys:
        result = {keys.pop(): result}
    return result


def merge_into(target: dict, nested: dict) -> dict:
    """ Deep-merge `nested` into `target` (in place)

        Conditions on paths sharing a prefix end up side by side:

            {'a': {'b': 1}} + {'a': {'c': 2}}
            #-> {'a': {'b': 1, 'c': 2}}
    """
    stack = [(target, nested)]
    while stack:
        dst, src = stack.pop()
        for key, value in src.items():
            if isinstance(value, dict) and isinstance(dst.get(key), dict) and not _is_operator_object(dst[key]):
                stack.append((dst[key], value))
            else:
                dst[key] = value
    return target


def _is_operator_object(value: dict) -> bool:
    """ Is it a condition like {$gt: 1}, rather than a nested object of paths? """
    return any(isinstance(k, str) and k.startswith('$') and k != ELEM_MATCH for k in value)
