from .inspect import pluck_kwargs_from
from ..exc import DisabledError


class MangoQuerySettingsHandler:
    """ Settings keeper for MangoQuery

        This is essentially a helper which will feed the correct kwargs to every handler.

        MangoQuery handlers receive settings as kwargs to their __init__() methods,
        and those kwargs have unique names.

        This class will collect all settings as a single, flat dict,
        and give each handler only the settings it wants.
    """

    #: Settings that are used by MangoQuery itself, not by handlers
    QUERY_SETTINGS = frozenset(('use_index', 'explain', 'db'))

    def __init__(self, settings: dict):
        """ Store the settings for every handler

            :param settings: dict of handler kwargs
        """
        assert isinstance(settings, dict)

        #: Settings dict
        self._settings = settings  # we don't make a copy, because we don't modify it

        #: Handler names
        self._handler_names = set()

        #: all kwargs names (to identify invalid ones)
        self._all_known_kwargs_names = set()

        #: disabled handler names
        self._disabled_handlers = set()

    def get(self, name: str, default=None):
        """ Get a setting that MangoQuery uses itself """
        return self._settings.get(name, default)

    def get_settings(self, handler_name: str, handler_cls: type) -> dict:
        """ Get settings for the given handler

            The handler's __init__() is analyzed: its keyword arguments are taken from the settings dict,
            or from their defaults.

            In addition to that, if the settings contain `<handler_name>_enabled=False`,
            the handler is disabled, and is_handler_enabled() will tell MangoQuery about it.
        """
        if not self._settings.get('{}_enabled'.format(handler_name), True):
            self._disabled_handlers.add(handler_name)

        kwargs = pluck_kwargs_from(self._settings, for_func=handler_cls.__init__)

        self._handler_names.add(handler_name)
        self._all_known_kwargs_names.update(kwargs.keys())

        return kwargs  # for the handler's __init__()

    def is_handler_enabled(self, handler_name: str) -> bool:
        """ Test if the handler is enabled in the configuration """
        return handler_name not in self._disabled_handlers

    def raise_if_not_handler_enabled(self, model_name: str, handler_name: str):
        """ Raise an error if the handler is not enabled """
        if not self.is_handler_enabled(handler_name):
            raise DisabledError('Query handler "{}" is disabled for "{}"'
                                .format(handler_name, model_name))

    def raise_if_invalid_handler_settings(self, mangoquery=None):
        """ Check whether there were any typos in setting names

            After all handlers were initialized, every kwarg they accept is known.
            A setting that no one has used must be a typo.

            :raises: KeyError: Invalid settings provided
        """
        known_keys = set('{}_enabled'.format(handler_name) for handler_name in self._handler_names)
        known_keys |= self._all_known_kwargs_names
        known_keys |= self.QUERY_SETTINGS

        invalid_keys = set(self._settings.keys()) - known_keys
        if invalid_keys:
            raise KeyError('Invalid settings were provided for MangoQuery {!r}: {}'
                           .format(mangoquery, ','.join(sorted(invalid_keys))))

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__, self._settings)
