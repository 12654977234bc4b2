"""
### Field Operators

Conditions in a `where` filter use LoopBack operator names.
They are translated into [Mango operators](https://docs.couchdb.org/en/stable/api/database/find.html#operators):

* `{ a: 1 }` - equality
* `{ a: { between: [1, 10] } }` - `{ $gte: 1, $lte: 10 }`
* `{ a: { inq: [...] } }` - `{ $in: [...] }`
* `{ a: { nin: [...] } }` - `{ $nin: [...] }`
* `{ a: { neq: 1 } }` - `{ $ne: 1 }`
* `{ a: { like: 'x' } }` - `{ $regex: 'x' }`
* `{ a: { nlike: 'x' } }` - `{ $regex: '[^x]' }`
* `{ a: { regexp: '/^x/i' } }` - `{ $regex: '(?i)^x' }`
* `{ a: { gt: 1 } }` - any other operator is passed through: `{ $gt: 1 }`

#### Patterns

`like`, `nlike`, `regexp` accept either a string, or a compiled `re` pattern.
The store speaks PCRE (Erlang `re`), so flags are converted to inline modifiers: `(?i)`.

Negation (`nlike`) has no exact PCRE equivalent without a full regex parser:
the pattern is wrapped into a negated character class, `[^pattern]`.
This is only correct for single-character patterns; a known limitation.

Text patterns can't be the only condition of a Mango query: the store wants at least one
indexed range condition. When a pattern operator is used, the filter injects `{_id: {$gt: null}}`.
"""

import re
import warnings
from collections import namedtuple
from typing import Callable, Mapping, Tuple

from ..exc import InvalidQueryError, UnsupportedPatternWarning


#: A pattern given as (source, flags), with flags in JavaScript notation: 'gim'
RegexLiteral = namedtuple('RegexLiteral', ('source', 'flags'))

# '/source/flags'
_REGEX_LITERAL_RE = re.compile(r'^/(?P<source>.*)/(?P<flags>[a-z]*)$', re.DOTALL)

# Python `re` flags -> PCRE inline modifiers
_PYTHON_FLAGS = (
    (re.IGNORECASE, 'i'),
    (re.MULTILINE, 'm'),
    (re.DOTALL, 's'),
    (re.VERBOSE, 'x'),
)

# Modifiers PCRE understands inline
_PCRE_FLAGS = frozenset('imsx')

# Operators that produce a text pattern
PATTERN_OPERATORS = frozenset(('like', 'nlike', 'regexp'))


def _is_sequence(value):
    return isinstance(value, (list, tuple, set, frozenset))


def parse_regex_literal(value):
    """ Parse a '/source/flags' string into a RegexLiteral. Anything else is returned as is """
    if isinstance(value, str):
        m = _REGEX_LITERAL_RE.match(value)
        if m:
            return RegexLiteral(m.group('source'), m.group('flags'))
    return value


def is_typed_pattern(value) -> bool:
    """ Is it a pattern with flags (as opposed to a plain string)? """
    return isinstance(value, (RegexLiteral, re.Pattern))


def pattern_source_and_flags(pattern) -> Tuple[str, str]:
    """ Get (source, flags) of a typed pattern; flags in the 'gimsx' notation """
    if isinstance(pattern, RegexLiteral):
        return pattern.source, pattern.flags
    flags = ''.join(letter for flag, letter in _PYTHON_FLAGS if pattern.flags & flag)
    return pattern.pattern, flags


def to_pcre(pattern, negative: bool = False, options: str = None) -> str:
    """ Build a PCRE-compatible regular expression

        :param pattern: A plain string, a RegexLiteral, or a compiled `re` pattern
        :param negative: Negate the pattern. Lossy: wraps it into `[^...]`
        :param options: Extra flags for a plain string pattern, e.g. 'i'
        :rtype: str
    """
    if not is_typed_pattern(pattern):
        source = pattern if options is None else '(?{}){}'.format(options, pattern)
        return '[^' + source + ']' if negative else source

    source, flags = pattern_source_and_flags(pattern)
    flags = ''.join(f for f in flags if f in _PCRE_FLAGS)
    prefix = '(?' + flags + ')' if flags else ''

    if negative:
        return prefix + '[^' + source + ']'
    return prefix + source


def _op_between(operand):
    if not _is_sequence(operand) or len(operand) != 2:
        raise InvalidQueryError('between: operand must be a list of exactly 2 values: lower and upper bound')
    lower, upper = operand
    return {'$gte': lower, '$lte': upper}


def _op_inq(operand):
    if not _is_sequence(operand):
        raise InvalidQueryError('inq: operand must be a list')
    return {'$in': list(operand)}


def _op_nin(operand):
    if not _is_sequence(operand):
        raise InvalidQueryError('nin: operand must be a list')
    return {'$nin': list(operand)}


def _op_regexp(operand):
    pattern = parse_regex_literal(operand)
    if not is_typed_pattern(pattern):
        return {'$regex': pattern}

    source, flags = pattern_source_and_flags(pattern)
    if 'g' in flags:
        warnings.warn('CouchDB regex syntax does not support global matching: {!r}'.format(operand),
                      UnsupportedPatternWarning)
    if 'i' in flags:
        source = '(?i)' + source
    return {'$regex': source}


class OperatorTranslator:
    """ Translates LoopBack operators into Mango operators

        Every operator is a callable(operand) -> dict of Mango operators.
        Unknown operators are passed through as `$<name>`, without validation.
    """

    # Operators that are translated
    _operators = {
        'between': _op_between,
        'inq': _op_inq,
        'nin': _op_nin,
        'neq': lambda operand: {'$ne': operand},
        'regexp': _op_regexp,
        # 'like' and 'nlike' are handled in translate(): they support `options`
    }

    def __init__(self, operators: Mapping[str, Callable] = None):
        """ Init the translator

        :param operators: Additional operators: {name: callable(operand) -> dict}.
            They take precedence over the built-in ones.
        """
        self._extra_operators = dict(operators or {})

    def translate(self, op: str, operand, options: str = None) -> Tuple[dict, bool]:
        """ Translate one operator

        :param op: LoopBack operator name, e.g. 'inq'
        :param operand: Its argument
        :param options: LoopBack `options` of the condition. 'i' makes `like` case-insensitive
        :return: (Mango operator dict, whether a text pattern was used)
        :raises InvalidQueryError: invalid operand
        """
        if op in self._extra_operators:
            return self._extra_operators[op](operand), op in PATTERN_OPERATORS

        if op == 'like':
            return {'$regex': to_pcre(operand, options=options)}, True
        if op == 'nlike':
            return {'$regex': to_pcre(operand, negative=True, options=options)}, True

        try:
            operator = self._operators[op]
        except KeyError:
            return {'$' + op: operand}, False  # passthrough

        return operator(operand), op in PATTERN_OPERATORS


def translate_operator(op: str, operand, options: str = None) -> Tuple[dict, bool]:
    """ Translate one operator with the default translator """
    return _default_translator.translate(op, operand, options)


_default_translator = OperatorTranslator()
