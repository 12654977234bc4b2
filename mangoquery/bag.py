import datetime
from collections.abc import Mapping
from typing import Dict, FrozenSet, Iterable, List, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy import types as sa_types
from sqlalchemy.orm import DeclarativeMeta


# Semantic type tags
STRING = 'string'
NUMBER = 'number'
DATE = 'date'
BOOLEAN = 'boolean'
ARRAY = 'array'
OBJECT = 'object'
ANY = 'any'

# Type names and Python types that may be used in a property definition
_TYPE_ALIASES = {
    'string': STRING, 'str': STRING, 'text': STRING,
    'number': NUMBER, 'int': NUMBER, 'integer': NUMBER, 'float': NUMBER,
    'date': DATE, 'datetime': DATE,
    'boolean': BOOLEAN, 'bool': BOOLEAN,
    'array': ARRAY, 'list': ARRAY,
    'object': OBJECT, 'dict': OBJECT,
    'any': ANY,
    str: STRING,
    int: NUMBER, float: NUMBER,
    bool: BOOLEAN,
    datetime.datetime: DATE, datetime.date: DATE,
    list: ARRAY, tuple: ARRAY,
    dict: OBJECT,
}

# Keys of a property definition that never describe a member shape
_RESERVED_DEFINITION_KEYS = frozenset(('type', 'id', 'required', 'default', 'index', 'description'))


class SchemaProperty:
    """ A single property of a model, normalized

        * `type`: one of the semantic type tags: string, number, date, boolean, array, object, any
        * `id`: whether this property is the model's identifier
        * `properties`: sub-properties of a nested object: {name: SchemaProperty}
        * `members`: member shapes of an array of objects: a tuple of {name: SchemaProperty}
    """

    __slots__ = ('name', 'type', 'id', 'properties', 'members')

    def __init__(self, name: str, type: str, id: bool = False,
                 properties: Mapping = None,
                 members: Iterable[Mapping] = ()):
        self.name = name
        self.type = type
        self.id = bool(id)
        self.properties = dict(properties or {})  # type: Dict[str, SchemaProperty]
        self.members = tuple(members)  # type: Tuple[Dict[str, SchemaProperty], ...]

    @property
    def is_array(self) -> bool:
        return self.type == ARRAY

    @property
    def is_nested(self) -> bool:
        return self.type == OBJECT

    def __eq__(self, other):
        if not isinstance(other, SchemaProperty):
            return NotImplemented
        return (self.name, self.type, self.id, self.properties, self.members) == \
               (other.name, other.type, other.id, other.properties, other.members)

    def __repr__(self):
        return '{}({!r}, {!r}{})'.format(self.__class__.__name__, self.name, self.type,
                                         ', id=True' if self.id else '')


def parse_type_tag(type_) -> str:
    """ Convert a type name, or a Python type, into a semantic type tag

        Unknown types become `any`
    """
    if isinstance(type_, str):
        type_ = type_.lower()
    try:
        return _TYPE_ALIASES.get(type_, ANY)
    except TypeError:  # unhashable
        return ANY


def parse_property(name: str, definition) -> SchemaProperty:
    """ Normalize a property definition into a SchemaProperty

        Supported definitions:

        * 'string', 'Number', str, int, ...: a scalar of the given type
        * {'type': 'number', 'id': True}: a typed property, possibly the identifier
        * [{'name': 'string'}, ...]: an array; every mapping inside is a member shape
        * {'street': 'string', ...}: a nested object (no 'type' key)
        * {'type': {'street': 'string'}}: a nested object, too
        * {'type': ['string']}: an array
        * {'type': 'array', 0: {'name': 'string'}, 1: {...}}: an array with member shapes
    """
    # Already normalized
    if isinstance(definition, SchemaProperty):
        return definition

    # Array: [shape, ...]
    if isinstance(definition, (list, tuple)):
        return SchemaProperty(name, ARRAY, members=_parse_member_shapes(definition))

    # Mappings
    if isinstance(definition, Mapping):
        # No 'type': the mapping describes a nested object
        if 'type' not in definition:
            return SchemaProperty(name, OBJECT, properties=parse_properties(definition))

        type_ = definition['type']
        is_id = definition.get('id', False)

        # {type: [...]}
        if isinstance(type_, (list, tuple)):
            return SchemaProperty(name, ARRAY, id=is_id, members=_parse_member_shapes(type_))

        # {type: {...}}
        if isinstance(type_, Mapping):
            return SchemaProperty(name, OBJECT, id=is_id, properties=parse_properties(type_))

        # {type: 'array', 0: {...}, 1: {...}}
        tag = parse_type_tag(type_)
        if tag == ARRAY:
            shapes = [v for k, v in definition.items()
                      if k not in _RESERVED_DEFINITION_KEYS]
            return SchemaProperty(name, ARRAY, id=is_id, members=_parse_member_shapes(shapes))

        return SchemaProperty(name, tag, id=is_id)

    # Scalar
    return SchemaProperty(name, parse_type_tag(definition))


def parse_properties(definitions: Mapping) -> Dict[str, SchemaProperty]:
    """ Normalize a mapping of property definitions """
    return {name: parse_property(name, definition)
            for name, definition in definitions.items()}


def _parse_member_shapes(shapes: Iterable) -> List[Dict[str, SchemaProperty]]:
    """ Normalize member shapes of an array. Scalar members have no shape and are skipped """
    return [parse_properties(shape)
            for shape in shapes
            if isinstance(shape, Mapping)]


class ModelSchema:
    """ Schema Descriptor: everything the query builder needs to know about a model.

    A model is stored in a collection that may be shared with other models.
    The schema tells which property is the identifier, which properties are arrays
    (so that filters on them get `$elemMatch`), and which are numbers or dates
    (so that results get converted back).

    Schemas are immutable once created, and shared between concurrent queries.
    """
    __schemas_per_model_cache = {}

    #: The name of the implicit identifier, when none is declared
    DEFAULT_ID_NAME = 'id'

    @classmethod
    def for_model(cls, model: DeclarativeMeta) -> 'ModelSchema':
        """ Get a schema for an SqlAlchemy declarative model.

        The schema is only initialized once per model class.
        """
        try:
            return cls.__schemas_per_model_cache[model]
        except KeyError:
            cls.__schemas_per_model_cache[model] = schema = cls.from_sqlalchemy(model)
            return schema

    @classmethod
    def from_sqlalchemy(cls, model: DeclarativeMeta) -> 'ModelSchema':
        """ Analyze an SqlAlchemy model: columns become properties, the primary key becomes the identifier """
        insp = inspect(model)
        if insp.is_aliased_class:
            raise TypeError('ModelSchema does not tolerate aliased() models')

        properties = {}
        id_name = None
        for prop in insp.mapper.column_attrs:
            column = prop.columns[0]
            is_id = bool(column.primary_key) and id_name is None
            if is_id:
                id_name = prop.key
            properties[prop.key] = SchemaProperty(prop.key, _sqlalchemy_type_tag(column.type), id=is_id)

        return cls(model.__name__, properties, id_name=id_name)

    def __init__(self, name: str, properties: Mapping, id_name: str = None):
        """ Init a schema

        :param name: Model name. Documents of this model are tagged with it.
        :param properties: Property definitions: {name: definition}. See parse_property()
        :param id_name: Name of the identifier property, if it's not flagged with `id: True`
        """
        self.name = name
        self.properties = parse_properties(properties)

        # The identifier: flagged, given, or implicit
        flagged = [p.name for p in self.properties.values() if p.id]
        if len(flagged) > 1:
            raise ValueError('Model {} has more than one identifier: {}'.format(name, ', '.join(flagged)))
        self.id_name = flagged[0] if flagged else (id_name or self.DEFAULT_ID_NAME)

        if self.id_name not in self.properties:
            self.properties[self.id_name] = SchemaProperty(self.id_name, STRING, id=True)
        else:
            self.properties[self.id_name].id = True

    def __contains__(self, name):
        return name in self.properties

    def __getitem__(self, name) -> SchemaProperty:
        return self.properties[name]

    def get(self, name, default=None) -> Union[SchemaProperty, None]:
        return self.properties.get(name, default)

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset(self.properties)

    @property
    def id_property(self) -> SchemaProperty:
        return self.properties[self.id_name]

    @property
    def is_id_numeric(self) -> bool:
        """ Is the identifier a number? The store keeps all ids as strings. """
        return self.id_property.type == NUMBER

    @property
    def date_fields(self) -> List[str]:
        """ Names of top-level properties that hold dates """
        return [name for name, prop in self.properties.items()
                if prop.type == DATE]

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self.name)


def _sqlalchemy_type_tag(type_: sa_types.TypeEngine) -> str:
    """ Get a semantic type tag for an SqlAlchemy column type """
    if isinstance(type_, sa_types.TypeDecorator):
        type_ = type_.impl if isinstance(type_.impl, sa_types.TypeEngine) else type_.impl()

    if isinstance(type_, sa_types.ARRAY):
        return ARRAY
    if isinstance(type_, sa_types.JSON):
        return OBJECT  # opaque: nothing is known about its keys
    if isinstance(type_, sa_types.Boolean):
        return BOOLEAN
    if isinstance(type_, (sa_types.Integer, sa_types.Numeric)):
        return NUMBER
    if isinstance(type_, (sa_types.Date, sa_types.DateTime)):
        return DATE
    if isinstance(type_, sa_types.String):
        return STRING
    return ANY
