from copy import deepcopy

from mangoquery import QueryExecutor


class FakeExecutor(QueryExecutor):
    """ An in-memory executor that replays prepared responses, and records every request """

    db_name = 'fake'

    def __init__(self, *pages, explain=None):
        """
        :param pages: Responses for find(), in order. An exception instance is raised instead of being returned.
        :param explain: Response for explain(), or an exception to raise
        """
        self.pages = list(pages)
        self.explain_result = explain
        self.queries = []
        self.explained = []

    def find(self, query):
        self.queries.append(deepcopy(query))
        result = self.pages.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def explain(self, query):
        self.explained.append(deepcopy(query))
        if isinstance(self.explain_result, Exception):
            raise self.explain_result
        return self.explain_result or {}


def make_docs(start, n):
    """ Make `n` documents with ids starting at `start` """
    return [{'_id': str(i), 'n': i} for i in range(start, start + n)]
