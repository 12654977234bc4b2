class MangoQuerySettingsDict(dict):
    """ MangoQuery settings container.

        Is mostly used for nice autocompletion and documentation purposes :)

        The keyword settings in this object are just plain kwargs names
        for every handler object's __init__ method,
        which are fed to subclasses of MangoQueryHandlerBase by MangoQuerySettingsHandler.

        In addition to that, there are '<handler-name>_enabled' settings,
        that can enable or disable a handler.
    """

    def __init__(self,
                 # --- where
                 model_index: str = None,
                 model_selector: dict = None,
                 operators: dict = None,
                 # --- limit
                 max_items: int = None,
                 # --- query
                 use_index=None,
                 explain: bool = False,
                 db: str = None,
                 # --- enabled handlers?
                 where_enabled: bool = True,
                 order_enabled: bool = True,
                 fields_enabled: bool = True,
                 limit_enabled: bool = True,
                 ):
        """ `MangoQuery` has a few settings that let you configure the way queries are made.

        Example:
            ```python
            from mangoquery import MangoQuery, MangoQuerySettingsDict

            mq = MangoQuery(user_schema, MangoQuerySettingsDict(
                model_index='doc_type',
                max_items=1000,
                explain=True,
            ))
            ```

        Args:
            model_index (str): (for: where)
                Name of the field that holds the model name in every document.
                Default: 'loopback__model__name'
            model_selector (dict | None): (for: where)
                A selector fragment that tells documents of this model apart.
                Overrides `model_index`; used verbatim.
            operators (dict[str, Callable] | None): (for: where)
                Additional filter operators: {name: callable(operand) -> dict of Mango operators}
            max_items (int | None): (for: limit)
                The maximum number of documents that can be loaded with this query.
                The user can never go any higher than that, and this value is forced onto every query.
            use_index (str | list[str] | None):
                Tell the store which index to use: a design document name, or [ddoc, index name]
            explain (bool):
                Ask the store which index it picks for every query, and log it to the
                'mangoquery.index_explain' logger. Diagnostics only.
            db (str | None):
                The database of this model. Default: the server's database

            where_enabled (bool): Enable/disable the `where` handler
            order_enabled (bool): Enable/disable the `order` handler
            fields_enabled (bool): Enable/disable the `fields` handler
            limit_enabled (bool): Enable/disable the `limit` handler
        """
        super(MangoQuerySettingsDict, self).__init__()
        self.update({k: v
                     for k, v in locals().items()
                     if k not in {'__class__', 'self'}})

    def and_more(self, **settings):
        """ Copy the object and add more settings to it """
        return self.__class__(**{**self, **settings})
