"""
### Pagination

The store returns at most `limit` documents per request (25 when no limit is given),
along with a `bookmark`: an opaque token to request the next page with.

`fetch_all()` keeps requesting pages until:

* the caller's `limit` is satisfied by the first page, or
* the store returns no bookmark, or the "no more data" bookmark (`'nil'`), or
* the store returns the very bookmark that was just used: it's not advancing,
  and following it would loop forever.

Pages are fetched one after another: every request depends on the previous response.
"""

import logging
import time
from copy import copy
from typing import List

from .bag import ModelSchema
from .exc import ProtocolViolationError

logger = logging.getLogger(__name__)
index_warning_logger = logging.getLogger('mangoquery.index_warning')
index_explain_logger = logging.getLogger('mangoquery.index_explain')


#: The bookmark the store returns when there's no more data
NO_MORE_DATA_BOOKMARK = 'nil'


class PaginatedFind:
    """ Cursor-driven pagination over the store's `_find`

        One object may be used for many queries, even concurrently:
        every fetch_all() call keeps its state to itself.
    """

    def __init__(self, executor, schema: ModelSchema, explain: bool = False, context=None):
        """ Init the pagination engine

        :param executor: Query executor: an object with find(query) and explain(query)
        :type executor: mangoquery.executor.QueryExecutor
        :param schema: The schema of the model being fetched
        :param explain: Log the index the store picks for every query
        :param context: Request context, for logging
        :type context: mangoquery.context.QueryContext | None
        """
        self.executor = executor
        self.schema = schema
        self.explain = explain
        self.context = context

    def fetch_all(self, query: dict) -> List[dict]:
        """ Fetch all pages of a query

        :param query: Mango query envelope. It's not modified.
        :return: The list of documents, in the order the store gave them
            (or numerically ordered by id, see sort_numeric_id())
        :raises DataAccessError: the store has failed on any page; nothing is returned
        """
        start = time.perf_counter()
        query = copy(query)  # our own envelope: the bookmark changes on every page
        query.pop('bookmark', None)

        if self.explain:
            self._explain(query)

        try:
            docs = self._fetch_pages(query)
        except Exception:
            logger.error('find failed: model=%s db=%s request_id=%s time=%.1fms',
                        self.schema.name, self._db_name, self._request_id, _ms_since(start))
            raise

        # The store sorts ids as strings
        if self.schema.is_id_numeric and query.get('sort'):
            docs = sort_numeric_id(docs, query['sort'])

        logger.info('find: model=%s db=%s request_id=%s docs=%d time=%.1fms',
                    self.schema.name, self._db_name, self._request_id, len(docs), _ms_since(start))
        return docs

    def _fetch_pages(self, query: dict) -> List[dict]:
        """ The page loop. `query` is modified: it gets bookmarks """
        docs = []
        limit = query.get('limit')
        n_page = 0

        while True:
            result = self.executor.find(query)
            n_page += 1
            logger.debug('find: model=%s page=%d bookmark=%r', self.schema.name, n_page, query.get('bookmark'))

            # The protocol promises `docs` in every successful response
            page = result.get('docs') if isinstance(result, dict) else None
            if page is None:
                raise ProtocolViolationError(query)

            if result.get('warning'):
                index_warning_logger.warning('%s: %s: %r', result['warning'], self.schema.name, query)

            # A limited query satisfied by the first page
            if limit and n_page == 1 and len(page) <= limit:
                return list(page)

            docs.extend(page)

            # Next page?
            bookmark = result.get('bookmark')
            if not bookmark or bookmark == NO_MORE_DATA_BOOKMARK:
                return docs
            if bookmark == query.get('bookmark'):
                return docs  # not advancing
            query['bookmark'] = bookmark

    def _explain(self, query: dict):
        """ Log which index the store picks for the query. Failures are not our business here """
        try:
            result = self.executor.explain(query)
            index = result.get('index') or {}
            index_explain_logger.debug('Explain: %s: %r: %s: %r',
                                       self.schema.name, query, index.get('ddoc'), index.get('def'))
        except Exception:
            index_explain_logger.exception('Explain failed: %s: %r', self.schema.name, query)

    @property
    def _request_id(self):
        return getattr(self.context, 'request_id', None)

    @property
    def _db_name(self):
        return getattr(self.executor, 'db_name', None)


def fetch_all(executor, query: dict, schema: ModelSchema, explain: bool = False, context=None) -> List[dict]:
    """ Fetch all pages of a Mango query

    :param executor: Query executor
    :param query: Mango query envelope
    :param schema: Schema of the model
    :param explain: Log the index the store picks
    :param context: Request context
    :rtype: list[dict]
    :raises DataAccessError
    """
    return PaginatedFind(executor, schema, explain=explain, context=context).fetch_all(query)


def sort_numeric_id(docs: List[dict], sort: List[dict]) -> List[dict]:
    """ Sort documents numerically by `_id`, when the sort directives sort by `_id`

    The store compares ids as strings: '10' < '2'. When the model's identifier is a number,
    this puts the documents into the right order.
    Ids that are not numbers go last.

    :param docs: Documents
    :param sort: Mango sort directives: [{field: 'asc'|'desc'}]
    :return: A new list
    """
    direction = next((directive['_id'] for directive in sort
                      if isinstance(directive, dict) and '_id' in directive),
                     None)
    if direction is None:
        return docs

    docs = sorted(docs, key=_numeric_id_key)
    if direction == 'desc':
        docs.reverse()
    return docs


def _numeric_id_key(doc: dict):
    value = doc.get('_id')
    try:
        return 0, int(value), ''
    except (TypeError, ValueError):
        return 1, 0, str(value)


def _ms_since(start: float) -> float:
    return (time.perf_counter() - start) * 1e3
