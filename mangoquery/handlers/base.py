from ..bag import ModelSchema
from ..exc import InvalidQueryError


class MangoQueryHandlerBase:
    """ An implementation of a handler from MangoQuery

        Every subclass will handle a single section of the Query object
    """

    #: Name of the Query Object section that this object is capable of handling
    query_object_section_name = None

    def __init__(self, schema: ModelSchema):
        """ Initialize the Query Object section handler with a model schema.

        This method does *not* receive any input data just yet, with the purpose of having an
        object that can be extended with some interesting defaults right at init time.

        :param schema: The schema of the model it's being applied to
        :type schema: ModelSchema

        NOTE: Any arguments that have default values will be treated as handler settings!!
        """
        #: The schema of the model to handle the Query Object for
        self.schema = schema

        # Has the input() method been called already?
        self.input_received = False
        self.input_value = None

        #: MangoQuery bound to this object. It may remain uninitialized.
        self.mangoquery = None

    def with_mangoquery(self, mangoquery):
        """ Bind this object with a MangoQuery

            :type mangoquery: mangoquery.query.MangoQuery
            """
        self.mangoquery = mangoquery
        return self

    def __copy__(self):
        """ A handler may be reused: i.e. its state before input() is called """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)
        return result

    def rename_id_field(self, field_name: str) -> str:
        """ The identifier is stored under the store's reserved key, `_id` """
        return '_id' if field_name == self.schema.id_name else field_name

    def input_prepare_query_object(self, query_object):
        """ Modify the Query Object before it is processed.

        This method is called before any input(), or validation, or anything.

        :param query_object: dict
        """
        return query_object

    def input(self, qo_value):
        """ Get a section of the Query object.

        The purpose of this method is to receive the input, validate it, and store as a public
        property so that external tools may export its value.

        :param qo_value: the value of the Query object field it's handling
        :rtype: MangoQueryHandlerBase
        :raises InvalidQueryError
        """
        self.input_value = qo_value  # no copying. Try not to modify it.

        # Set the flag
        self.input_received = True

        # Make sure that input() can only be used once
        self.input = self.__raise_input_not_reusable

        return self

    def is_input_empty(self):
        """ Test whether the input value was empty """
        return not self.input_value

    def __raise_input_not_reusable(self, *args, **kwargs):
        raise RuntimeError("You can't use the {}.input() method twice. "
                           "copy() the handler before reusing it!"
                           .format(self.__class__.__name__))

    def alter_query(self, query):
        """ Put this handler's section into the query envelope

        :param query: The Mango query envelope being built
        :type query: dict
        :rtype: dict
        """
        raise NotImplementedError()

    def get_final_input_value(self):
        """ Get the final input of the handler """
        return self.input_value


def validate_non_negative_int(name: str, value):
    """ Validate an optional non-negative integer input """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError('{} must be either an integer, or null'.format(name))
    if value < 0:
        raise InvalidQueryError('{} must not be negative'.format(name))
    return value
