import unittest

from mangoquery import ModelSchema, PaginatedFind, fetch_all, sort_numeric_id
from mangoquery.exc import ProtocolViolationError, StoreQueryError

from . import models
from .util import FakeExecutor, make_docs


class PaginationTest(unittest.TestCase):
    """ Test fetching all pages """

    longMessage = True
    maxDiff = None

    def setUp(self):
        self.schema = models.article_schema()  # string ids: no re-sorting

    def test_all_pages(self):
        executor = FakeExecutor(
            {'docs': make_docs(0, 50), 'bookmark': 'T1'},
            {'docs': make_docs(50, 50), 'bookmark': 'T2'},
            {'docs': make_docs(100, 50)},
        )
        query = {'selector': {'a': 1}, 'bookmark': 'stale'}
        docs = fetch_all(executor, query, self.schema)

        self.assertEqual(len(docs), 150)
        self.assertEqual([d['n'] for d in docs], list(range(150)))

        # Bookmarks were followed
        self.assertEqual([q.get('bookmark') for q in executor.queries], [None, 'T1', 'T2'])

        # The caller's envelope was not modified
        self.assertEqual(query, {'selector': {'a': 1}, 'bookmark': 'stale'})

    def test_no_more_data(self):
        executor = FakeExecutor(
            {'docs': make_docs(0, 25), 'bookmark': 'T1'},
            {'docs': [], 'bookmark': 'nil'},
        )
        self.assertEqual(len(fetch_all(executor, {'selector': {}}, self.schema)), 25)
        self.assertEqual(len(executor.queries), 2)

    def test_repeating_bookmark(self):
        # The store keeps returning the same bookmark: it's not advancing
        executor = FakeExecutor(
            {'docs': make_docs(0, 25), 'bookmark': 'T1'},
            {'docs': make_docs(0, 25), 'bookmark': 'T1'},
            {'docs': make_docs(0, 25), 'bookmark': 'T1'},
        )
        docs = fetch_all(executor, {'selector': {}}, self.schema)
        self.assertEqual(len(executor.queries), 2)
        self.assertEqual(len(docs), 50)

    def test_limit(self):
        # The first page satisfies the limit
        executor = FakeExecutor(
            {'docs': make_docs(0, 10), 'bookmark': 'T1'},
        )
        docs = fetch_all(executor, {'selector': {}, 'limit': 10}, self.schema)
        self.assertEqual(len(docs), 10)
        self.assertEqual(len(executor.queries), 1)

    def test_numeric_ids(self):
        schema = models.user_schema()
        executor = FakeExecutor(
            {'docs': [{'_id': '1'}, {'_id': '10'}, {'_id': '2'}]},
            {'docs': [{'_id': '1'}, {'_id': '10'}, {'_id': '2'}]},
            {'docs': [{'_id': '1'}, {'_id': '10'}, {'_id': '2'}]},
        )

        # Sorted by id: re-sorted numerically
        docs = fetch_all(executor, {'selector': {}, 'sort': [{'_id': 'asc'}]}, schema)
        self.assertEqual([d['_id'] for d in docs], ['1', '2', '10'])

        docs = fetch_all(executor, {'selector': {}, 'sort': [{'_id': 'desc'}]}, schema)
        self.assertEqual([d['_id'] for d in docs], ['10', '2', '1'])

        # Not sorted: left alone
        docs = fetch_all(executor, {'selector': {}}, schema)
        self.assertEqual([d['_id'] for d in docs], ['1', '10', '2'])

    def test_sort_numeric_id(self):
        docs = [{'_id': 'b'}, {'_id': '10'}, {'_id': '2'}, {'_id': 'a'}]

        # Non-numeric ids go last
        self.assertEqual([d['_id'] for d in sort_numeric_id(docs, [{'_id': 'asc'}])],
                         ['2', '10', 'a', 'b'])

        # Sorted by something else
        self.assertIs(sort_numeric_id(docs, [{'name': 'asc'}]), docs)

    def test_errors(self):
        # No docs: protocol violation
        executor = FakeExecutor({'bookmark': 'T1'})
        with self.assertRaises(ProtocolViolationError):
            fetch_all(executor, {'selector': {}}, self.schema)

        # Store errors propagate; nothing is returned
        executor = FakeExecutor(
            {'docs': make_docs(0, 25), 'bookmark': 'T1'},
            StoreQueryError(500, 'internal_server_error', 'boom'),
        )
        with self.assertLogs('mangoquery.pagination', level='ERROR') as logs:
            with self.assertRaises(StoreQueryError) as e:
                fetch_all(executor, {'selector': {}}, self.schema)
        self.assertEqual(e.exception.status_code, 500)
        self.assertEqual(logs.records[0].levelname, 'ERROR')
        self.assertIn('find failed', logs.output[0])

    def test_warning(self):
        executor = FakeExecutor({'docs': [], 'warning': 'No matching index found'})
        with self.assertLogs('mangoquery.index_warning', level='WARNING') as logs:
            fetch_all(executor, {'selector': {}}, self.schema)
        self.assertIn('No matching index found', logs.output[0])

    def test_explain(self):
        # Explained once per fetch
        executor = FakeExecutor(
            {'docs': make_docs(0, 5), 'bookmark': 'T1'},
            {'docs': [], 'bookmark': 'nil'},
            explain={'index': {'ddoc': '_design/a', 'def': {'fields': [{'a': 'asc'}]}}},
        )
        with self.assertLogs('mangoquery.index_explain', level='DEBUG') as logs:
            PaginatedFind(executor, self.schema, explain=True).fetch_all({'selector': {'a': 1}})
        self.assertEqual(len(executor.explained), 1)
        self.assertIn('_design/a', logs.output[0])

        # Explain failures are ignored
        executor = FakeExecutor(
            {'docs': make_docs(0, 5)},
            explain=StoreQueryError(400, 'bad_request', 'nope'),
        )
        with self.assertLogs('mangoquery.index_explain', level='ERROR'):
            docs = PaginatedFind(executor, self.schema, explain=True).fetch_all({'selector': {}})
        self.assertEqual(len(docs), 5)

    def test_reusable(self):
        # One engine, many fetches: no state is shared
        executor = FakeExecutor(
            {'docs': make_docs(0, 5), 'bookmark': 'T1'},
            {'docs': [], 'bookmark': 'nil'},
            {'docs': make_docs(0, 3)},
        )
        finder = PaginatedFind(executor, ModelSchema('X', {}))
        self.assertEqual(len(finder.fetch_all({'selector': {}})), 5)
        self.assertEqual(len(finder.fetch_all({'selector': {}})), 3)
        self.assertNotIn('bookmark', executor.queries[2])
