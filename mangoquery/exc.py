class BaseMangoQueryException(Exception):
    pass


class InvalidQueryError(BaseMangoQueryException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class DisabledError(InvalidQueryError):
    """ The feature is disabled """


class ConfigurationError(BaseMangoQueryException):
    """ Invalid connection or routing settings """


class DataAccessError(BaseMangoQueryException):
    """ Fetching documents from the store has failed

        Nothing accumulated before the failure is returned to the caller.
    """


class StoreQueryError(DataAccessError):
    """ The store has reported an error for a query """

    def __init__(self, status_code: int = None, error: str = None, reason: str = None):
        self.status_code = status_code
        self.error = error
        self.reason = reason

        super(StoreQueryError, self).__init__(
            'Store query failed ({status_code}): {error}: {reason}'.format(
                status_code=status_code,
                error=error,
                reason=reason)
        )


class ProtocolViolationError(DataAccessError):
    """ The store has answered, but the response is not what the protocol promises """

    def __init__(self, query: dict):
        self.query = query

        super(ProtocolViolationError, self).__init__(
            'No documents returned for query: {!r}'.format(query)
        )


class UnsupportedPatternWarning(UserWarning):
    """ A pattern requests a feature the store's regex dialect cannot express """
