import re
import unittest
from copy import copy

from mangoquery.handlers import *
from mangoquery.handlers.operators import parse_regex_literal
from mangoquery.handlers.paths import merge_into
from mangoquery.exc import InvalidQueryError, UnsupportedPatternWarning

from . import models


class PathsTest(unittest.TestCase):
    """ Test array path resolution """

    longMessage = True
    maxDiff = None

    def test_resolve_array_path(self):
        schema = models.user_schema()

        # Not nested
        self.assertEqual(resolve_array_path('name', schema), 'name')
        self.assertEqual(resolve_array_path('nonexistent', schema), 'nonexistent')

        # Nested objects
        self.assertEqual(resolve_array_path('address.city', schema), 'address.city')

        # Arrays
        self.assertEqual(resolve_array_path('tags.name', schema), 'tags.$elemMatch.name')
        self.assertEqual(resolve_array_path('tags.label', schema), 'tags.$elemMatch.label')  # second shape
        self.assertEqual(resolve_array_path('address.tags.tag', schema), 'address.tags.$elemMatch.tag')

        # Not resolvable: left alone, and logged
        with self.assertLogs('mangoquery.handlers.paths', level='DEBUG') as logs:
            self.assertEqual(resolve_array_path('address.zip', schema), 'address.zip')
            self.assertEqual(resolve_array_path('tags.missing', schema), 'tags.missing')
        self.assertEqual(len(logs.records), 2)
        self.assertIn("'address.zip'", logs.output[0])

    def test_unfold_and_merge(self):
        self.assertEqual(unfold_path('a', 1), {'a': 1})
        self.assertEqual(unfold_path('a.b.c', 1), {'a': {'b': {'c': 1}}})

        # Very deep paths: no recursion
        deep = unfold_path('.'.join(['a'] * 5000), 1)
        self.assertIn('a', deep)

        # Merge
        target = {'a': {'b': 1}}
        merge_into(target, {'a': {'c': 2}})
        self.assertEqual(target, {'a': {'b': 1, 'c': 2}})

        # Operator objects are conditions, not paths: replaced
        target = {'a': {'$gt': 1}}
        merge_into(target, {'a': {'x': 2}})
        self.assertEqual(target, {'a': {'x': 2}})

        # $elemMatch is a path
        target = {'a': {'$elemMatch': {'b': 1}}}
        merge_into(target, {'a': {'$elemMatch': {'c': 2}}})
        self.assertEqual(target, {'a': {'$elemMatch': {'b': 1, 'c': 2}}})


class OperatorsTest(unittest.TestCase):
    """ Test operator translation """

    longMessage = True
    maxDiff = None

    def test_translate(self):
        # Passthrough
        self.assertEqual(translate_operator('gt', 5), ({'$gt': 5}, False))
        self.assertEqual(translate_operator('exists', True), ({'$exists': True}, False))

        # Renamed
        self.assertEqual(translate_operator('neq', 1), ({'$ne': 1}, False))
        self.assertEqual(translate_operator('inq', [1, 2]), ({'$in': [1, 2]}, False))
        self.assertEqual(translate_operator('inq', (1, 2)), ({'$in': [1, 2]}, False))
        self.assertEqual(translate_operator('nin', [1]), ({'$nin': [1]}, False))
        self.assertEqual(translate_operator('between', [1, 10]), ({'$gte': 1, '$lte': 10}, False))

        # Patterns
        self.assertEqual(translate_operator('like', 'J.*'), ({'$regex': 'J.*'}, True))
        self.assertEqual(translate_operator('like', 'J.*', 'i'), ({'$regex': '(?i)J.*'}, True))
        self.assertEqual(translate_operator('nlike', 'abc'), ({'$regex': '[^abc]'}, True))
        self.assertEqual(translate_operator('regexp', '^J'), ({'$regex': '^J'}, True))
        self.assertEqual(translate_operator('regexp', '/^J/i'), ({'$regex': '(?i)^J'}, True))
        self.assertEqual(translate_operator('regexp', re.compile('^J', re.I)), ({'$regex': '(?i)^J'}, True))

    def test_invalid_operands(self):
        with self.assertRaises(InvalidQueryError):
            translate_operator('between', [1])
        with self.assertRaises(InvalidQueryError):
            translate_operator('between', 5)
        with self.assertRaises(InvalidQueryError):
            translate_operator('inq', 'abc')
        with self.assertRaises(InvalidQueryError):
            translate_operator('nin', 1)

    def test_global_flag(self):
        with self.assertWarns(UnsupportedPatternWarning):
            self.assertEqual(translate_operator('regexp', '/^J/g'), ({'$regex': '^J'}, True))

    def test_to_pcre(self):
        self.assertEqual(to_pcre('abc'), 'abc')
        self.assertEqual(to_pcre('abc', negative=True), '[^abc]')
        self.assertEqual(to_pcre('abc', options='i'), '(?i)abc')
        self.assertEqual(to_pcre(re.compile('a', re.I | re.M)), '(?im)a')
        self.assertEqual(to_pcre(RegexLiteral('a', 'gi')), '(?i)a')  # 'g' is not PCRE
        self.assertEqual(to_pcre(RegexLiteral('a', 'i'), negative=True), '(?i)[^a]')
        self.assertEqual(to_pcre(RegexLiteral('a', '')), 'a')

        self.assertEqual(parse_regex_literal('/a/gi'), RegexLiteral('a', 'gi'))
        self.assertEqual(parse_regex_literal('a/b'), 'a/b')

    def test_custom_operators(self):
        translator = OperatorTranslator({
            'near': lambda v: {'$near': v},
            'neq': lambda v: {'$not': {'$eq': v}},  # overrides the built-in one
        })
        self.assertEqual(translator.translate('near', 1), ({'$near': 1}, False))
        self.assertEqual(translator.translate('neq', 1), ({'$not': {'$eq': 1}}, False))
        self.assertEqual(translator.translate('gt', 1), ({'$gt': 1}, False))


class FilterTest(unittest.TestCase):
    """ Test MangoFilter """

    longMessage = True
    maxDiff = None

    def test_discriminator(self):
        schema = models.user_schema()

        # Nothing to filter
        self.assertEqual(MangoFilter(schema).build(None), {'loopback__model__name': 'User'})
        self.assertEqual(MangoFilter(schema).build('garbage'), {'loopback__model__name': 'User'})
        self.assertEqual(MangoFilter(schema).build({}), {'loopback__model__name': 'User'})

        # Custom index
        self.assertEqual(MangoFilter(schema, model_index='doc_type').build({'age': 1}),
                         {'doc_type': 'User', 'age': 1})

        # Custom selector: used verbatim, never shared
        model_selector = {'type': {'$in': ['User', 'Admin']}}
        f = MangoFilter(schema, model_selector=model_selector)
        selector = f.build({'age': 1})
        self.assertEqual(selector, {'type': {'$in': ['User', 'Admin']}, 'age': 1})
        self.assertNotIn('loopback__model__name', selector)
        selector['type']['$in'].append('Hacker')
        self.assertEqual(model_selector, {'type': {'$in': ['User', 'Admin']}})

        with self.assertRaises(ValueError):
            MangoFilter(schema, model_selector='User')

    def test_discriminator_is_never_replaced(self):
        schema = models.user_schema()

        # The filter names the model index: both conditions are kept
        self.assertEqual(MangoFilter(schema).build({'loopback__model__name': 'Article', 'age': 1}),
                         {'$and': [{'loopback__model__name': 'User'},
                                   {'loopback__model__name': 'Article', 'age': 1}]})

        # The custom selector and the filter use the same boolean operator
        f = MangoFilter(schema, model_selector={'$or': [{'type': 'user'}, {'type': 'admin'}]})
        self.assertEqual(f.build({'or': [{'age': 1}, {'age': 2}]}),
                         {'$and': [{'$or': [{'type': 'user'}, {'type': 'admin'}]},
                                   {'$or': [{'age': 1}, {'age': 2}]}]})

        # Patterns inside a collision still get the `_id` condition
        self.assertEqual(MangoFilter(schema).build({'loopback__model__name': 'X', 'name': {'like': 'J'}}),
                         {'$and': [{'loopback__model__name': 'User'},
                                   {'loopback__model__name': 'X',
                                    'name': {'$regex': 'J'},
                                    '_id': {'$gt': None}}]})

        # The custom selector already constrains `_id`
        f = MangoFilter(schema, model_selector={'_id': {'$gt': 'user:'}})
        self.assertEqual(f.build({'name': {'like': 'J'}}),
                         {'_id': {'$gt': 'user:'}, 'name': {'$regex': 'J'}})

    def test_conditions(self):
        build = MangoFilter(models.user_schema()).build

        self.assertEqual(build({'name': 'John', 'age': {'gt': 18, 'lt': 65}}),
                         {'loopback__model__name': 'User',
                          'name': 'John',
                          'age': {'$gt': 18, '$lt': 65}})

        self.assertEqual(build({'age': {'between': [18, 25]}}),
                         {'loopback__model__name': 'User',
                          'age': {'$gte': 18, '$lte': 25}})

        # Case-insensitive like
        self.assertEqual(build({'id': 1, 'name': {'like': 'jo', 'options': 'i'}}),
                         {'loopback__model__name': 'User',
                          '_id': '1',
                          'name': {'$regex': '(?i)jo'}})

        with self.assertRaises(InvalidQueryError):
            build({'age': {'between': 1}})

    def test_identifier(self):
        build = MangoFilter(models.user_schema()).build

        self.assertEqual(build({'id': 10}), {'loopback__model__name': 'User', '_id': '10'})
        self.assertEqual(build({'id': '10'}), {'loopback__model__name': 'User', '_id': '10'})
        self.assertEqual(build({'id': None}), {'loopback__model__name': 'User', '_id': None})

        # Renaming twice changes nothing
        self.assertEqual(build({'_id': '10'}), build({'id': 10}))

        # Operands of operators are left alone
        self.assertEqual(build({'id': {'inq': [1, 2]}}),
                         {'loopback__model__name': 'User', '_id': {'$in': [1, 2]}})

    def test_boolean(self):
        build = MangoFilter(models.user_schema()).build

        # Round trip: the discriminator is only at the top
        self.assertEqual(build({'and': [{'age': {'gte': 18}}, {'age': {'lte': 65}}]}),
                         {'loopback__model__name': 'User',
                          '$and': [{'age': {'$gte': 18}}, {'age': {'$lte': 65}}]})

        self.assertEqual(build({'or': [{'and': [{'name': 'a'}, {'age': 1}]}, {'nor': [{'name': 'b'}]}]}),
                         {'loopback__model__name': 'User',
                          '$or': [{'$and': [{'name': 'a'}, {'age': 1}]},
                                  {'$nor': [{'name': 'b'}]}]})

        with self.assertRaises(InvalidQueryError):
            build({'or': [1, 2]})

    def test_patterns(self):
        build = MangoFilter(models.user_schema()).build

        # A pattern gets an `_id` condition
        self.assertEqual(build({'name': {'like': 'J'}}),
                         {'loopback__model__name': 'User',
                          'name': {'$regex': 'J'},
                          '_id': {'$gt': None}})

        # ... even when nested: but only once, at the top
        self.assertEqual(build({'or': [{'name': {'nlike': 'J'}}, {'age': 5}]}),
                         {'loopback__model__name': 'User',
                          '$or': [{'name': {'$regex': '[^J]'}}, {'age': 5}],
                          '_id': {'$gt': None}})

        # The identifier is already constrained
        self.assertEqual(build({'id': 5, 'name': {'regexp': '/^J/i'}}),
                         {'loopback__model__name': 'User',
                          '_id': '5',
                          'name': {'$regex': '(?i)^J'}})

        # The injected condition is never shared between selectors
        s1 = build({'name': {'like': 'J'}})
        s1['_id']['$gt'] = 'x'
        self.assertEqual(build({'name': {'like': 'J'}})['_id'], {'$gt': None})

    def test_paths(self):
        build = MangoFilter(models.user_schema()).build

        self.assertEqual(build({'tags.name': 'admin'}),
                         {'loopback__model__name': 'User',
                          'tags': {'$elemMatch': {'name': 'admin'}}})

        # Paths sharing a prefix are merged
        self.assertEqual(build({'tags.name': 'admin', 'tags.label': {'neq': 'x'}}),
                         {'loopback__model__name': 'User',
                          'tags': {'$elemMatch': {'name': 'admin', 'label': {'$ne': 'x'}}}})

        self.assertEqual(build({'address.city': 'Paris', 'address.zip': {'gt': 1}}),
                         {'loopback__model__name': 'User',
                          'address': {'city': 'Paris', 'zip': {'$gt': 1}}})

        self.assertEqual(build({'address.tags.tag': 'x'}),
                         {'loopback__model__name': 'User',
                          'address': {'tags': {'$elemMatch': {'tag': 'x'}}}})

    def test_input(self):
        f = MangoFilter(models.user_schema())
        self.assertEqual(f.alter_query({}), {'selector': {'loopback__model__name': 'User'}})

        f.input({'age': 1})
        self.assertEqual(f.alter_query({}), {'selector': {'loopback__model__name': 'User', 'age': 1}})
        self.assertEqual(f.get_final_input_value(), {'loopback__model__name': 'User', 'age': 1})

        # input() is not reusable
        with self.assertRaises(RuntimeError):
            f.input({'age': 2})

        # ... unless copied before
        f = MangoFilter(models.user_schema())
        f2 = copy(f)
        f.input({'age': 1})
        f2.input({'age': 2})
        self.assertEqual(f2.selector['age'], 2)


class SortTest(unittest.TestCase):
    """ Test MangoSort """

    longMessage = True
    maxDiff = None

    def test_build(self):
        build = MangoSort(models.user_schema()).build

        # Default: by id
        self.assertEqual(build(None), [{'_id': 'asc'}])
        self.assertEqual(build([]), [{'_id': 'asc'}])

        # Lists
        self.assertEqual(build(['name DESC', 'age ASC', 'registered']),
                         [{'name': 'desc'}, {'age': 'asc'}, {'registered': 'asc'}])
        self.assertEqual(build(['id DESC']), [{'_id': 'desc'}])

        # String
        self.assertEqual(build('name DESC, age'), [{'name': 'desc'}, {'age': 'asc'}])
        self.assertEqual(build('id'), [{'_id': 'asc'}])

        # Invalid
        with self.assertRaises(InvalidQueryError):
            build(5)
        with self.assertRaises(InvalidQueryError):
            build(['a', 1])
        with self.assertRaises(InvalidQueryError):
            build({'a': 1})

    def test_input(self):
        schema = models.user_schema()

        # No order: no sort
        self.assertEqual(MangoSort(schema).input(None).alter_query({}), {})

        self.assertEqual(MangoSort(schema).input(['age DESC']).alter_query({}),
                         {'sort': [{'age': 'desc'}]})


class LimitTest(unittest.TestCase):
    """ Test MangoLimit """

    longMessage = True
    maxDiff = None

    def test_prepare(self):
        prepare = MangoLimit(models.user_schema()).input_prepare_query_object

        self.assertEqual(prepare({'skip': 10, 'limit': 5}), {'limit': (10, 5)})
        self.assertEqual(prepare({'offset': 10}), {'limit': (10, None)})
        self.assertEqual(prepare({'skip': None}), {})
        self.assertEqual(prepare({'where': {}}), {'where': {}})

        with self.assertRaises(InvalidQueryError):
            prepare({'skip': 1, 'offset': 2})

    def test_limit(self):
        schema = models.user_schema()

        l = MangoLimit(schema).input((10, 5))
        self.assertEqual((l.skip, l.limit), (10, 5))
        self.assertTrue(l.has_limit)
        self.assertEqual(l.alter_query({}), {'skip': 10, 'limit': 5})

        l = MangoLimit(schema).input(None)
        self.assertFalse(l.has_limit)
        self.assertEqual(l.alter_query({}), {})

        # Zeroes
        l = MangoLimit(schema).input((0, 0))
        self.assertEqual(l.alter_query({}), {})

        # Max items
        self.assertEqual(MangoLimit(schema, max_items=100).input(None).limit, 100)
        self.assertEqual(MangoLimit(schema, max_items=100).input((None, 500)).limit, 100)
        self.assertEqual(MangoLimit(schema, max_items=100).input((None, 50)).limit, 50)

        # Invalid
        with self.assertRaises(InvalidQueryError):
            MangoLimit(schema).input((None, -1))
        with self.assertRaises(InvalidQueryError):
            MangoLimit(schema).input(('1', None))
        with self.assertRaises(InvalidQueryError):
            MangoLimit(schema).input((None, True))


class ProjectTest(unittest.TestCase):
    """ Test MangoProject """

    longMessage = True
    maxDiff = None

    def test_fields(self):
        schema = models.user_schema()

        p = MangoProject(schema).input(['id', 'name'])
        self.assertTrue(p.includes_id)
        self.assertEqual(p.alter_query({}), {'fields': ['_id', 'name']})

        p = MangoProject(schema).input({'name': True, 'age': False})
        self.assertFalse(p.includes_id)
        self.assertEqual(p.alter_query({}), {'fields': ['name', '_id']})

        p = MangoProject(schema).input('name')
        self.assertEqual(p.alter_query({}), {'fields': ['name', '_id']})

        # All fields
        p = MangoProject(schema).input(None)
        self.assertTrue(p.includes_id)
        self.assertEqual(p.alter_query({}), {})

        p = MangoProject(schema).input([])
        self.assertTrue(p.includes_id)
        self.assertEqual(p.alter_query({}), {})

        with self.assertRaises(InvalidQueryError):
            MangoProject(schema).input(5)
        with self.assertRaises(InvalidQueryError):
            MangoProject(schema).input(['a', None])
