#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
"""
Expected-result assertions and their evaluation against execution outcomes.

An assertion tree is built once, at catalog parsing time, from a <result>
element. There are several types of assertions available:

  * all-of
  * any-of
  * not
  * assert
  * assert-count
  * assert-deep-eq
  * assert-empty
  * assert-eq
  * assert-false
  * assert-permutation
  * assert-serialization-error
  * assert-string-value
  * assert-true
  * assert-type
  * assert-xml
  * error
  * serialization-matches

and, for schema tests, the expected validity of a schema or an instance.
"""
import os
import re
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar, Optional

from xmlconform.aliases import ExecutionOutcomeType, QueryCallbackType
from xmlconform.exceptions import EngineError, UnsupportedOperation
from xmlconform.etree import ElementType, iter_children, get_attribute, \
    get_boolean_attribute, etree_tostring, fragments_are_equal
from xmlconform.helpers import collapse_white_spaces, is_equivalent, is_close, \
    parse_literal_sequence, compile_regex, truncate
from xmlconform.namespaces import local_name
from xmlconform.outcomes import TestOutcome, Pass, Fail, Error, NotApplicable
from xmlconform.sequences import ResultItem, ResultSequence, ValidationResult

logger = logging.getLogger('xmlconform')

XMLNS_PATTERN = re.compile(r'\sxmlns(?::\w+)?="[^"]*"')
CONSTRUCTOR_PATTERN = re.compile(
    r'^\s*(?:xs:)?[\w\-]+\(\s*(?:"((?:[^"]|"")*)"|\'((?:[^\']|\'\')*)\')\s*\)\s*$'
)

MAX_REPR_LENGTH = 200


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """
    Optional cooperation for evaluating assertions.

    :param query: a callback that evaluates an expression with `$result` \
    bound to the result sequence, usually bound to the active engine.
    :param strict_error_codes: if `True` an expected error requires a matching \
    error code, when the engine reports one.
    :param xsd_version: the XSD version of the engine, for selecting the \
    expected validity of schema tests.
    """
    query: Optional[QueryCallbackType] = None
    strict_error_codes: bool = False
    xsd_version: Optional[str] = None

    def evaluate(self, expression: str, result: ResultSequence) -> Optional[ResultSequence]:
        """
        Evaluates an expression using the query callback. Returns `None` if
        the callback is not available or if the engine can't evaluate it.
        """
        if self.query is None:
            return None

        try:
            return self.query(expression, result)
        except EngineError as err:
            logger.debug("cannot evaluate %r with the engine: %s", expression, err)
            return None


DEFAULT_CONTEXT = EvaluationContext()


def repr_outcome(outcome: ExecutionOutcomeType) -> str:
    """A printable and bounded representation of an execution outcome."""
    if isinstance(outcome, EngineError):
        return truncate(f'error: {outcome}', MAX_REPR_LENGTH)
    return truncate(str(outcome), MAX_REPR_LENGTH)


def is_true_sequence(seq: ResultSequence) -> bool:
    return seq.string_value().strip().lower() == 'true'


class Assertion:
    """Base class of expected-result assertions."""
    __slots__ = ()

    tag: ClassVar[str] = ''

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        raise NotImplementedError()

    def __str__(self) -> str:
        return f'<{self.tag}/>'


class LeafAssertion(Assertion):
    """
    An assertion on the result sequence of a query or of a transformation.
    Engine errors and validation results are turned into failures and errors.
    """
    __slots__ = ()

    expected_label: ClassVar[str] = 'result'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        if isinstance(outcome, EngineError):
            return Fail(f"Expected {self.expected_label}, got error: {outcome}")
        elif isinstance(outcome, ValidationResult):
            return Error(f"<{self.tag}> cannot judge a validation result")
        return self.check(outcome, context)

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        raise NotImplementedError()


###
# Composite assertions

@dataclass(frozen=True, slots=True)
class AllOf(Assertion):
    """Passes if all the child assertions pass. An empty list vacuously passes."""
    items: tuple[Assertion, ...] = ()
    tag: ClassVar[str] = 'all-of'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        approximate: Optional[Pass] = None
        for item in self.items:
            result = item.evaluate(outcome, context)
            if not isinstance(result, Pass):
                return result
            elif approximate is None and result.note:
                approximate = result
        return approximate or Pass()

    def __str__(self) -> str:
        return '<all-of>{}</all-of>'.format(''.join(str(x) for x in self.items))


@dataclass(frozen=True, slots=True)
class AnyOf(Assertion):
    """
    Passes at the first child assertion that passes. Otherwise the outcome
    of the last child is returned, that is usually the most specific failure.
    """
    items: tuple[Assertion, ...] = ()
    tag: ClassVar[str] = 'any-of'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        result: TestOutcome = Pass()
        for item in self.items:
            result = item.evaluate(outcome, context)
            if isinstance(result, Pass):
                return result
        return result

    def __str__(self) -> str:
        return '<any-of>{}</any-of>'.format(''.join(str(x) for x in self.items))


@dataclass(frozen=True, slots=True)
class Not(Assertion):
    """Inverts Pass and Fail, other outcomes pass through unchanged."""
    item: Assertion
    tag: ClassVar[str] = 'not'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        result = self.item.evaluate(outcome, context)
        if isinstance(result, Pass):
            return Fail(f"Expected NOT to pass: {self.item}")
        elif isinstance(result, Fail):
            return Pass()
        return result

    def __str__(self) -> str:
        return f'<not>{self.item}</not>'


###
# Value assertions

@dataclass(frozen=True, slots=True)
class AssertEq(LeafAssertion):
    value: str
    tag: ClassVar[str] = 'assert-eq'
    expected_label: ClassVar[str] = 'value'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        expected = self.value.strip()
        actual = result.string_value().strip()

        if len(result) == 1:
            values = parse_literal_sequence(expected)
            if values is not None and len(values) == 1:
                if is_equivalent(actual, values[0]):
                    return Pass()
                elif result[0].type_name in ('xs:float', 'xs:double') \
                        and is_close(actual, values[0]):
                    return Pass(note=f"approximate: {actual} is close to {values[0]}")
                return Fail(f"Expected '{expected}', got '{actual}'")

            value = context.evaluate(f'$result = ({expected})', result)
            if value is not None:
                if is_true_sequence(value):
                    return Pass()
                return Fail(f"Expected '{expected}', got '{actual}'")

            match = CONSTRUCTOR_PATTERN.match(expected)
            if match is not None:
                literal = match.group(1) if match.group(1) is not None else match.group(2)
                if is_equivalent(actual, literal.strip()):
                    return Pass(note=f"approximate: constructor {expected} "
                                     f"compared by its lexical value")

        if actual == expected:
            return Pass()
        return Fail(f"Expected '{expected}', got '{actual}'")

    def __str__(self) -> str:
        return f'<assert-eq>{self.value}</assert-eq>'


@dataclass(frozen=True, slots=True)
class AssertCount(LeafAssertion):
    count: int
    tag: ClassVar[str] = 'assert-count'
    expected_label: ClassVar[str] = 'count'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if len(result) == self.count:
            return Pass()
        return Fail(f"Expected count {self.count}, got {len(result)}")

    def __str__(self) -> str:
        return f'<assert-count>{self.count}</assert-count>'


@dataclass(frozen=True, slots=True)
class AssertEmpty(LeafAssertion):
    tag: ClassVar[str] = 'assert-empty'
    expected_label: ClassVar[str] = 'empty'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if result.is_empty():
            return Pass()
        return Fail(f"Expected empty, got {len(result)} items")


@dataclass(frozen=True, slots=True)
class AssertTrue(LeafAssertion):
    tag: ClassVar[str] = 'assert-true'
    expected_label: ClassVar[str] = 'true'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        actual = result.string_value().strip().lower()
        if actual == 'true':
            return Pass()
        return Fail(f"Expected true, got '{actual}'")


@dataclass(frozen=True, slots=True)
class AssertFalse(LeafAssertion):
    tag: ClassVar[str] = 'assert-false'
    expected_label: ClassVar[str] = 'false'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        actual = result.string_value().strip().lower()
        if actual == 'false':
            return Pass()
        return Fail(f"Expected false, got '{actual}'")


@dataclass(frozen=True, slots=True)
class AssertStringValue(LeafAssertion):
    value: str
    normalize_space: bool = False
    tag: ClassVar[str] = 'assert-string-value'
    expected_label: ClassVar[str] = 'string value'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        actual = result.string_value()
        if self.normalize_space:
            expected = collapse_white_spaces(self.value)
            actual = collapse_white_spaces(actual)
        else:
            expected = self.value

        if actual == expected:
            return Pass()
        elif actual and ' ' not in actual and is_close(actual, expected):
            return Pass(note=f"approximate: {actual} is close to {expected}")
        return Fail(f"Expected '{expected}', got '{actual}'")

    def __str__(self) -> str:
        if self.normalize_space:
            return '<assert-string-value normalize-space="true">{}</assert-string-value>'\
                .format(self.value)
        return f'<assert-string-value>{self.value}</assert-string-value>'


###
# Type assertions

XSD_PRIMITIVE_TYPES = frozenset((
    'string', 'boolean', 'decimal', 'float', 'double', 'duration', 'dateTime',
    'time', 'date', 'gYearMonth', 'gYear', 'gMonthDay', 'gDay', 'gMonth',
    'hexBinary', 'base64Binary', 'anyURI', 'QName', 'NOTATION', 'untypedAtomic',
))

XSD_BUILTIN_BASE_TYPES = {
    'integer': 'decimal',
    'nonPositiveInteger': 'integer',
    'negativeInteger': 'nonPositiveInteger',
    'long': 'integer',
    'int': 'long',
    'short': 'int',
    'byte': 'short',
    'nonNegativeInteger': 'integer',
    'positiveInteger': 'nonNegativeInteger',
    'unsignedLong': 'nonNegativeInteger',
    'unsignedInt': 'unsignedLong',
    'unsignedShort': 'unsignedInt',
    'unsignedByte': 'unsignedShort',
    'normalizedString': 'string',
    'token': 'normalizedString',
    'language': 'token',
    'NMTOKEN': 'token',
    'Name': 'token',
    'NCName': 'Name',
    'ID': 'NCName',
    'IDREF': 'NCName',
    'ENTITY': 'NCName',
    'dayTimeDuration': 'duration',
    'yearMonthDuration': 'duration',
    'dateTimeStamp': 'dateTime',
}

NODE_TESTS = {
    'node': None,
    'element': 'element',
    'schema-element': 'element',
    'attribute': 'attribute',
    'schema-attribute': 'attribute',
    'text': 'text',
    'comment': 'comment',
    'processing-instruction': 'processing-instruction',
    'document-node': 'document',
    'namespace-node': 'namespace',
}

OCCURRENCE_INDICATORS = ('?', '*', '+')


def is_derived_type(type_name: Optional[str], base_type: str) -> bool:
    """Checks if an XSD builtin atomic type is derived from another one."""
    if type_name is None:
        return False

    name = local_name(type_name)
    base = local_name(base_type)
    if base == 'anyAtomicType':
        return True
    elif base == 'numeric':
        return any(is_derived_type(name, x) for x in ('decimal', 'float', 'double'))

    while name != base:
        try:
            name = XSD_BUILTIN_BASE_TYPES[name]
        except KeyError:
            return False
    return True


def match_item_type(item_type: str, item: ResultItem) -> bool:
    if item_type == 'item()':
        return True
    elif item_type.startswith('function('):
        return item.kind in ('function', 'map', 'array')
    elif item_type.startswith('map('):
        return item.kind == 'map'
    elif item_type.startswith('array('):
        return item.kind == 'array'
    elif item_type.endswith(')') and '(' in item_type:
        kind_test, _, arguments = item_type[:-1].partition('(')
        try:
            kind = NODE_TESTS[kind_test]
        except KeyError:
            return False

        if kind is None:
            return item.is_node
        elif item.kind != kind:
            return False

        name = arguments.split(',')[0].strip()
        if kind in ('element', 'attribute') and name and name != '*':
            return item.name is not None and local_name(item.name) == local_name(name)
        return True
    else:
        return item.kind == 'atomic' and is_derived_type(item.type_name, item_type)


def match_sequence_type(sequence_type: str, result: ResultSequence) -> bool:
    """
    Matches a result sequence against a sequence type. Only builtin types are
    known, user-defined schema types are never matched.
    """
    sequence_type = collapse_white_spaces(sequence_type).replace(' (', '(')
    if not sequence_type:
        return False
    elif sequence_type == 'empty-sequence()':
        return result.is_empty()

    occurrence = ''
    if sequence_type[-1] in OCCURRENCE_INDICATORS and sequence_type[-2:] != '(*':
        occurrence = sequence_type[-1]
        sequence_type = sequence_type[:-1].strip()
    if sequence_type.startswith('(') and sequence_type.endswith(')'):
        sequence_type = sequence_type[1:-1].strip()

    if not result.items:
        return occurrence in ('?', '*')
    elif len(result) > 1 and occurrence not in ('*', '+'):
        return False
    return all(match_item_type(sequence_type, item) for item in result)


@dataclass(frozen=True, slots=True)
class AssertType(LeafAssertion):
    type_name: str
    tag: ClassVar[str] = 'assert-type'
    expected_label: ClassVar[str] = 'typed value'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if not self.type_name.strip():
            return Error("missing sequence type in <assert-type>")

        value = context.evaluate(f'$result instance of {self.type_name}', result)
        if value is not None:
            matched = is_true_sequence(value)
        else:
            matched = match_sequence_type(self.type_name, result)

        if matched:
            return Pass()

        actual_types = ', '.join(x.type_name or f'{x.kind}()' for x in result) or 'empty'
        return Fail(f"Expected type {self.type_name}, got {actual_types}")

    def __str__(self) -> str:
        return f'<assert-type>{self.type_name}</assert-type>'


###
# Error assertions

@dataclass(frozen=True, slots=True)
class ExpectedError(Assertion):
    """
    Passes if the engine returned an error. The error code is compared only
    in strict mode and only if the engine reports error codes.
    """
    code: str = '*'
    serialization: bool = False
    tag: ClassVar[str] = 'error'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        if not isinstance(outcome, EngineError):
            return Fail(f"Expected error {self.code}, got result: {repr_outcome(outcome)}")
        elif self.code == '*' or not outcome.code or outcome.code == self.code:
            return Pass()
        elif context.strict_error_codes:
            return Fail(f"Expected error {self.code}, got error {outcome}")
        return Pass(note=f"error code mismatch: expected {self.code}, got {outcome.code}")

    def __str__(self) -> str:
        if self.serialization:
            return f'<assert-serialization-error code="{self.code}"/>'
        return f'<error code="{self.code}"/>'


###
# XML and serialization assertions

def read_expected_file(path: str) -> str:
    """Reads the text of an expected result file."""
    with open(path, encoding='utf-8') as fp:
        return fp.read()


@dataclass(frozen=True, slots=True)
class AssertXml(LeafAssertion):
    """
    Compares the serialization of the result with an XML fragment. If the trees
    can't be compared the textual containment is used, flagging the outcome
    as an approximation.
    """
    content: Optional[str] = None
    file: Optional[str] = None
    ignore_prefixes: bool = False
    tag: ClassVar[str] = 'assert-xml'
    expected_label: ClassVar[str] = 'XML'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if self.content is not None:
            expected = self.content.strip()
        elif self.file is not None:
            try:
                expected = read_expected_file(self.file).strip()
            except OSError as err:
                return Error(f"cannot read expected result file {self.file!r}: {err}")
        else:
            return Error("<assert-xml> without content or file")

        actual = result.to_xml().strip()
        if actual == expected or actual.replace(' />', '/>') == expected:
            return Pass()
        elif fragments_are_equal(actual, expected):
            return Pass()

        if self.ignore_prefixes or '<' not in actual:
            actual_text, expected_text = XMLNS_PATTERN.sub('', actual), \
                XMLNS_PATTERN.sub('', expected)
            if collapse_white_spaces(actual_text) == collapse_white_spaces(expected_text):
                return Pass(note="approximate: equal after removing namespace declarations")

        if expected and collapse_white_spaces(expected) in collapse_white_spaces(actual):
            return Pass(note="approximate: expected XML contained in the result")

        return Fail("XML mismatch: expected '{}', got '{}'".format(
            truncate(expected, MAX_REPR_LENGTH), truncate(actual, MAX_REPR_LENGTH)
        ))

    def __str__(self) -> str:
        if self.content is not None:
            return f'<assert-xml>{self.content}</assert-xml>'
        return f'<assert-xml file="{self.file}"/>'


@dataclass(frozen=True, slots=True)
class SerializationMatches(LeafAssertion):
    regex: Optional[str] = None
    file: Optional[str] = None
    flags: Optional[str] = None
    tag: ClassVar[str] = 'serialization-matches'
    expected_label: ClassVar[str] = 'serialization'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if self.regex is not None:
            pattern = self.regex
        elif self.file is not None:
            try:
                pattern = read_expected_file(self.file)
            except OSError as err:
                return Error(f"cannot read expected result file {self.file!r}: {err}")
        else:
            return Error("<serialization-matches> without a pattern")

        try:
            regex = compile_regex(pattern, self.flags)
        except ValueError as err:
            return Error(str(err))

        serialization = result.to_xml()
        if regex.search(serialization) is not None:
            return Pass()
        return Fail("Serialization '{}' doesn't match '{}'".format(
            truncate(serialization, MAX_REPR_LENGTH), truncate(pattern, MAX_REPR_LENGTH)
        ))

    def __str__(self) -> str:
        return f'<serialization-matches>{self.regex or self.file}</serialization-matches>'


###
# Expression assertions: they need the cooperation of the engine
# for an exact judgement.

def sequences_are_equal(actual: list[str], expected: list[str], ordered: bool = True) -> bool:
    if len(actual) != len(expected):
        return False
    elif ordered:
        return all(is_equivalent(v1, v2) for v1, v2 in zip(actual, expected))

    remaining = list(expected)
    for value in actual:
        for k, other in enumerate(remaining):
            if is_equivalent(value, other) or is_close(value, other):
                del remaining[k]
                break
        else:
            return False
    return True


def is_contained(values: Iterable[str], text: str) -> bool:
    return all(v in text for v in values)


@dataclass(frozen=True, slots=True)
class AssertDeepEq(LeafAssertion):
    expression: str
    tag: ClassVar[str] = 'assert-deep-eq'
    expected_label: ClassVar[str] = 'deep-equal value'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        value = context.evaluate(f'deep-equal($result, ({self.expression}))', result)
        if value is not None:
            if is_true_sequence(value):
                return Pass()
            return Fail(f"Expected deep-equal to {self.expression}, got {repr_outcome(result)}")

        expected = parse_literal_sequence(self.expression)
        if expected is not None:
            if sequences_are_equal(result.values(), expected):
                return Pass()
            return Fail(f"Expected deep-equal to {self.expression}, got {repr_outcome(result)}")

        if result.items and is_contained(result.values(), self.expression):
            return Pass(note="approximate: result values contained in the expected expression")
        return Fail(f"Expected deep-equal to {self.expression}, got {repr_outcome(result)}")

    def __str__(self) -> str:
        return f'<assert-deep-eq>{self.expression}</assert-deep-eq>'


@dataclass(frozen=True, slots=True)
class AssertPermutation(LeafAssertion):
    expression: str
    tag: ClassVar[str] = 'assert-permutation'
    expected_label: ClassVar[str] = 'permutation'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        expected_values: Optional[list[str]]
        sequence = context.evaluate(self.expression, ResultSequence())
        if sequence is not None:
            expected_values = sequence.values()
        else:
            expected_values = parse_literal_sequence(self.expression)

        if expected_values is not None:
            if sequences_are_equal(result.values(), expected_values, ordered=False):
                return Pass()
            return Fail(f"Expected a permutation of {self.expression}, "
                        f"got {repr_outcome(result)}")

        if result.items and is_contained(result.values(), self.expression):
            return Pass(note="approximate: result values contained in the expected expression")
        return Fail(f"Expected a permutation of {self.expression}, got {repr_outcome(result)}")

    def __str__(self) -> str:
        return f'<assert-permutation>{self.expression}</assert-permutation>'


@dataclass(frozen=True, slots=True)
class Assert(LeafAssertion):
    """
    A custom assertion: an expression that must be true with `$result` bound
    to the result. Not applicable without the cooperation of the engine.
    """
    expression: str
    tag: ClassVar[str] = 'assert'
    expected_label: ClassVar[str] = 'assertion'

    def check(self, result: ResultSequence, context: EvaluationContext) -> TestOutcome:
        if context.query is None:
            return NotApplicable("custom assertion requires expression evaluation")

        try:
            value = context.query(f'boolean({self.expression})', result)
        except UnsupportedOperation as err:
            return NotApplicable(f"custom assertion not evaluable: {err}")
        except EngineError as err:
            return Error(f"cannot evaluate assertion {self.expression!r}: {err}")

        if is_true_sequence(value):
            return Pass()
        return Fail(f"Assertion {self.expression!r} failed for {repr_outcome(result)}")

    def __str__(self) -> str:
        return f'<assert>{self.expression}</assert>'


###
# Validity assertions for schema tests

VALIDITY_VALUES = ('valid', 'invalid', 'indeterminate')


@dataclass(frozen=True, slots=True)
class AssertValidity(Assertion):
    """
    The expected validity of a schema or of an instance. An engine error
    (e.g. a schema that can't be loaded) counts as invalid.
    """
    expected: str
    version: Optional[str] = None
    tag: ClassVar[str] = 'expected'

    def applies_to(self, xsd_version: Optional[str]) -> bool:
        if self.version is None or xsd_version is None:
            return True
        return xsd_version in self.version.split()

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        if self.expected == 'indeterminate':
            return Pass(note="indeterminate validity")
        elif isinstance(outcome, EngineError):
            if self.expected == 'invalid':
                return Pass()
            return Fail(f"Expected valid, got error: {outcome}")
        elif not isinstance(outcome, ValidationResult):
            return Error(f"<{self.tag}> requires a validation result")

        actual = 'valid' if outcome.valid else 'invalid'
        if actual == self.expected:
            return Pass()
        return Fail(f"Expected {self.expected}, got {outcome}")

    def __str__(self) -> str:
        if self.version:
            return f'<expected validity="{self.expected}" version="{self.version}"/>'
        return f'<expected validity="{self.expected}"/>'


@dataclass(frozen=True, slots=True)
class VersionedValidity(Assertion):
    """
    Alternative expected validities for different XSD versions. The first
    one specific for the version of the engine is used, otherwise the first
    one without a version.
    """
    items: tuple[AssertValidity, ...] = ()
    tag: ClassVar[str] = 'expected'

    def select(self, xsd_version: Optional[str]) -> Optional[AssertValidity]:
        for item in self.items:
            if item.version is not None and item.applies_to(xsd_version):
                return item
        for item in self.items:
            if item.version is None:
                return item
        return None

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        item = self.select(context.xsd_version)
        if item is None:
            return NotApplicable(f"no expected validity for XSD {context.xsd_version}")
        return item.evaluate(outcome, context)

    def __str__(self) -> str:
        return ''.join(str(x) for x in self.items)


@dataclass(frozen=True, slots=True)
class UnknownAssertion(Assertion):
    """An assertion element that is not supported, never judged."""
    name: str
    tag: ClassVar[str] = 'unknown'

    def evaluate(self, outcome: ExecutionOutcomeType,
                 context: EvaluationContext = DEFAULT_CONTEXT) -> TestOutcome:
        return NotApplicable(f"unsupported assertion <{self.name}>")

    def __str__(self) -> str:
        return f'<{self.name}/>'


def evaluate(assertion: Assertion, outcome: ExecutionOutcomeType,
             context: Optional[EvaluationContext] = None) -> TestOutcome:
    """
    Judges an execution outcome, a result or an engine error, against an
    assertion tree. The evaluation is deterministic and has no side effects.
    """
    return assertion.evaluate(outcome, context or DEFAULT_CONTEXT)


###
# Parsing of result elements

def parse_assertion(elem: ElementType, base_dir: str = '') -> Assertion:
    """
    Builds an assertion tree from an assertion element of a catalog.

    :param elem: the assertion element, e.g. an <assert-eq> element.
    :param base_dir: the directory for resolving the referenced files.
    """
    tag = local_name(elem.tag)
    text = elem.text or ''

    if tag == 'all-of':
        return AllOf(tuple(parse_assertion(e, base_dir) for e in iter_children(elem)))
    elif tag == 'any-of':
        return AnyOf(tuple(parse_assertion(e, base_dir) for e in iter_children(elem)))
    elif tag == 'not':
        children = [parse_assertion(e, base_dir) for e in iter_children(elem)]
        if len(children) == 1:
            return Not(children[0])
        return Not(AllOf(tuple(children)))
    elif tag == 'assert-eq':
        return AssertEq(text)
    elif tag == 'assert-count':
        try:
            return AssertCount(int(text.strip()))
        except ValueError:
            return UnknownAssertion(f'{tag} {text.strip()!r}')
    elif tag == 'assert-empty':
        return AssertEmpty()
    elif tag == 'assert-true':
        return AssertTrue()
    elif tag == 'assert-false':
        return AssertFalse()
    elif tag == 'assert-type':
        return AssertType(text.strip())
    elif tag == 'assert-string-value':
        return AssertStringValue(text, get_boolean_attribute(elem, 'normalize-space'))
    elif tag == 'error':
        return ExpectedError((get_attribute(elem, 'code') or '*').strip())
    elif tag == 'assert-serialization-error':
        return ExpectedError((get_attribute(elem, 'code') or '*').strip(), serialization=True)
    elif tag == 'assert-xml':
        file = get_attribute(elem, 'file')
        return AssertXml(
            content=None if file else inner_xml(elem),
            file=resolve_path(file, base_dir) if file else None,
            ignore_prefixes=get_boolean_attribute(elem, 'ignore-prefixes'),
        )
    elif tag == 'assert-deep-eq':
        return AssertDeepEq(text.strip())
    elif tag == 'assert-permutation':
        return AssertPermutation(text.strip())
    elif tag == 'assert':
        return Assert(text.strip())
    elif tag == 'serialization-matches':
        file = get_attribute(elem, 'file')
        return SerializationMatches(
            regex=None if file else text,
            file=resolve_path(file, base_dir) if file else None,
            flags=get_attribute(elem, 'flags'),
        )
    elif tag == 'expected':
        validity = get_attribute(elem, 'validity', '')
        if validity in VALIDITY_VALUES:
            return AssertValidity(validity, get_attribute(elem, 'version'))

    logger.debug("unsupported assertion element <%s>", tag)
    return UnknownAssertion(tag)


def parse_result(elem: Optional[ElementType], base_dir: str = '') -> Assertion:
    """
    Builds the assertion tree of a <result> element. A missing result or
    an empty one is a vacuous all-of.
    """
    if elem is None:
        return AllOf()

    assertions = tuple(parse_assertion(e, base_dir) for e in iter_children(elem))
    if len(assertions) == 1:
        return assertions[0]
    return AllOf(assertions)


def inner_xml(elem: ElementType) -> str:
    """Returns the content of an element as an XML fragment."""
    parts = [elem.text or '']
    parts.extend(etree_tostring(child, with_tail=True) for child in elem)
    return ''.join(parts)


def resolve_path(path: str, base_dir: str) -> str:
    return os.path.normpath(os.path.join(base_dir, path))
