#!/usr/bin/env python
#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
import os
import unittest
from xml.etree import ElementTree

from xmlconform.assertions import AssertEq, AssertCount, AssertType, AssertValidity, \
    ExpectedError
from xmlconform.catalogs import TestCase, TestSet, QT3CatalogParser
from xmlconform.config import load_skip_file
from xmlconform.dependencies import Dependency
from xmlconform.engines import AbstractEngine, ElementPathEngine, LxmlEngine, \
    XMLSchemaEngine
from xmlconform.outcomes import Pass, Fail, Error, NotApplicable, Skipped
from xmlconform.runner import ExecutionState, TestExecution, TestRunner, run_suite
from xmlconform.sequences import ResultSequence

RESOURCES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'resources')
QT3_CATALOG = os.path.join(RESOURCES_DIR, 'qt3', 'catalog.xml')
XSLT30_CATALOG = os.path.join(RESOURCES_DIR, 'xslt30', 'catalog.xml')
XSD_CATALOG = os.path.join(RESOURCES_DIR, 'xsd', 'suite.xml')


class RecordingEngine(AbstractEngine):
    """An XPath 2.0 engine that records the evaluated expressions."""
    name = 'recording'

    def __init__(self, **versions):
        super().__init__(xpath='2.0', **versions)
        self.expressions = []

    def parse(self, xml_source, base_uri=None):
        return ElementTree.ElementTree(ElementTree.XML(xml_source))

    def evaluate_query(self, document, expression, environment=None):
        self.expressions.append(expression)
        return ResultSequence.from_strings(['1'], 'xs:integer')


class FaultyEngine(RecordingEngine):
    name = 'faulty'

    def evaluate_query(self, document, expression, environment=None):
        if expression == 'crash':
            raise ZeroDivisionError('division by zero')
        return super().evaluate_query(document, expression, environment)


def get_outcomes(results):
    return {r.test_id: r.outcome for r in results}


class TestRunnerTest(unittest.TestCase):

    def setUp(self):
        self.test_set = TestSet('set', os.path.join(RESOURCES_DIR, 'qt3', 'set.xml'))

    def test_dependency_not_satisfied(self):
        engine = RecordingEngine()
        runner = TestRunner(engine)
        test_case = TestCase('t1', test='1', dependencies=(Dependency('spec', 'XP31'),),
                             assertion=AssertEq('1'))

        result = runner.run_test_case(test_case, self.test_set)
        self.assertIsInstance(result.outcome, NotApplicable)
        self.assertEqual(result.message, 'Dependency not satisfied: spec = XP31')
        self.assertListEqual(engine.expressions, [])

        test_case = TestCase('t2', test='1', dependencies=(Dependency('spec', 'XP20+'),),
                             assertion=AssertEq('1'))
        result = runner.run_test_case(test_case, self.test_set)
        self.assertEqual(result.outcome, Pass())
        self.assertListEqual(engine.expressions, ['1'])

    def test_test_result(self):
        runner = TestRunner(RecordingEngine(), suite='qt3')
        test_case = TestCase('t1', description='A test', test='1', assertion=AssertCount(2))

        result = runner.run_test_case(test_case, self.test_set)
        self.assertEqual(result.test_id, 't1')
        self.assertEqual(result.test_set, 'set')
        self.assertEqual(result.test_suite, 'qt3')
        self.assertEqual(result.description, 'A test')
        self.assertIsInstance(result.outcome, Fail)
        self.assertEqual(result.expected, '<assert-count>2</assert-count>')
        self.assertEqual(result.actual, '1')
        self.assertGreaterEqual(result.duration, 0.0)

    def test_missing_expression(self):
        runner = TestRunner(RecordingEngine())
        result = runner.run_test_case(TestCase('t1'), self.test_set)
        self.assertEqual(result.outcome, Error("test case has no expression to evaluate"))

    def test_engine_fault_isolation(self):
        engine = FaultyEngine()
        runner = TestRunner(engine)
        test_cases = [
            TestCase('t1', test='1', assertion=AssertEq('1')),
            TestCase('t2', test='crash', assertion=AssertEq('1')),
            TestCase('t3', test='1', assertion=AssertEq('1')),
        ]
        self.test_set.test_cases.extend(test_cases)

        results = list(runner.run_test_set(self.test_set))
        self.assertEqual(len(results), 3)
        self.assertEqual(results[0].outcome, Pass())
        self.assertIsInstance(results[1].outcome, Error)
        self.assertIn('engine fault', results[1].message)
        self.assertIn('ZeroDivisionError', results[1].message)
        self.assertEqual(results[2].outcome, Pass())

    def test_empty_sequence_type(self):
        self.test_set.test_cases.append(TestCase('t1', test='1', assertion=AssertType('')))
        result = next(TestRunner(RecordingEngine()).run_test_set(self.test_set))
        self.assertEqual(result.outcome, Error("missing sequence type in <assert-type>"))

    def test_unsupported_operations(self):
        runner = TestRunner(AbstractEngine(xslt='1.0'))
        test_case = TestCase('t1', kind='transform', stylesheet='a.xsl')
        result = runner.run_test_case(test_case, self.test_set)
        self.assertIsInstance(result.outcome, NotApplicable)

        result = runner.run_test_case(TestCase('t2', kind='unknown'), self.test_set)
        self.assertIsInstance(result.outcome, Error)

    def test_skip(self):
        engine = RecordingEngine()
        runner = TestRunner(engine, skip=['t1', 'set/t2'])
        for name in ('t1', 't2'):
            result = runner.run_test_case(TestCase(name, test='1'), self.test_set)
            self.assertEqual(result.outcome, Skipped())
            self.assertEqual(result.message, 'listed in skip file')
        self.assertListEqual(engine.expressions, [])

        self.assertFalse(runner.is_skipped(TestCase('t2'), TestSet('other', 'other.xml')))

    def test_on_result_callback(self):
        results = []
        runner = TestRunner(RecordingEngine(), on_result=results.append)
        result = runner.run_test_case(TestCase('t1', test='1'), self.test_set)
        self.assertListEqual(results, [result])

    def test_execution_states(self):
        execution = TestExecution(TestCase('t1'), self.test_set)
        self.assertIs(execution.state, ExecutionState.PENDING_DEPENDENCIES)
        with self.assertLogs('xmlconform', level='DEBUG') as ctx:
            execution.advance(ExecutionState.ENVIRONMENT_LOADED)
        self.assertIn('PendingDependencies -> EnvironmentLoaded', ctx.output[0])
        self.assertIs(execution.state, ExecutionState.ENVIRONMENT_LOADED)

        outcome = execution.stop(Pass())
        self.assertIs(execution.outcome, outcome)


class QT3SuiteTest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.results = run_suite(QT3_CATALOG, ElementPathEngine())
        cls.outcomes = get_outcomes(cls.results)

    def test_selected_test_sets(self):
        results = run_suite(QT3_CATALOG, ElementPathEngine(), pattern='^set-')
        self.assertEqual(len(results), 4)
        self.assertEqual(len([r for r in results if isinstance(r.outcome, Pass)]), 2)
        self.assertEqual(len([r for r in results if isinstance(r.outcome, Fail)]), 2)
        self.assertEqual(len([r for r in results if isinstance(r.outcome, Error)]), 0)
        self.assertListEqual([r.test_suite for r in results], ['qt3'] * 4)

    def test_results_order(self):
        test_sets = []
        for result in self.results:
            if result.test_set not in test_sets:
                test_sets.append(result.test_set)
        self.assertListEqual(test_sets, ['set-a', 'set-b', 'environments', 'dependencies',
                                         'assertions', 'broken', 'missing'])

        parser = QT3CatalogParser(QT3_CATALOG)
        catalog = parser.parse()
        test_set = parser.parse_test_set(catalog.test_sets[2])
        self.assertListEqual([r.test_id for r in self.results if r.test_set == 'environments'],
                             [tc.name for tc in test_set])

    def test_environments(self):
        outcomes = self.outcomes
        for name in ('env-global', 'env-local', 'env-shadowed', 'env-namespaces',
                     'env-inline', 'env-none', 'env-query-file'):
            self.assertEqual(outcomes[name], Pass(), msg=name)

        outcome = outcomes['env-not-found']
        self.assertIsInstance(outcome, Error)
        self.assertIn('environment', outcome.message)
        self.assertIn('no-such-environment', outcome.message)

        outcome = outcomes['env-missing-source']
        self.assertIsInstance(outcome, Error)
        self.assertIn('no-such-file.xml', outcome.message)

    def test_dependencies(self):
        outcomes = self.outcomes
        self.assertEqual(outcomes['dep-xp31'], Pass())
        self.assertIsInstance(outcomes['dep-feature'], NotApplicable)
        self.assertEqual(outcomes['dep-feature-unsatisfied'], Pass())
        self.assertIsInstance(outcomes['dep-unknown-type'], NotApplicable)
        self.assertIsInstance(outcomes['dep-xml-11'], NotApplicable)

        results = run_suite(QT3_CATALOG, ElementPathEngine('2.0'), pattern='^dependencies$')
        outcomes = get_outcomes(results)
        self.assertIsInstance(outcomes['dep-xp31'], NotApplicable)
        self.assertEqual(outcomes['dep-xp31'].message,
                         'Dependency not satisfied: spec = XP31')

    def test_assertions(self):
        outcomes = self.outcomes
        for name in ('assert-any-of', 'assert-not', 'assert-error', 'assert-syntax-error',
                     'assert-deep-eq', 'assert-permutation', 'assert-custom', 'assert-xml'):
            self.assertEqual(outcomes[name], Pass(), msg=name)

        self.assertIsInstance(outcomes['assert-all-of-failing'], Fail)
        self.assertIsInstance(outcomes['assert-unknown'], NotApplicable)

    def test_test_set_errors(self):
        outcome = self.outcomes['broken/parse']
        self.assertIsInstance(outcome, Error)
        self.assertIn('not well-formed', outcome.message)
        self.assertIsInstance(self.outcomes['missing/parse'], Error)

    def test_skip_file(self):
        skip = load_skip_file(os.path.join(RESOURCES_DIR, 'skip.txt'))
        results = run_suite(QT3_CATALOG, ElementPathEngine(), pattern='^set-', skip=skip)
        outcomes = get_outcomes(results)
        self.assertEqual(outcomes['set-a-count'], Pass())
        self.assertIsInstance(outcomes['set-a-empty'], Skipped)
        self.assertIsInstance(outcomes['set-b-empty'], Skipped)

    def test_catalog_errors(self):
        results = []
        with self.assertLogs('xmlconform', level='ERROR'):
            run_suite(os.path.join(RESOURCES_DIR, 'bad-catalog.xml'), ElementPathEngine(),
                      suite='qt3', on_result=results.append)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].test_id, 'catalog_parse')
        self.assertIsInstance(results[0].outcome, Error)

        with self.assertLogs('xmlconform', level='ERROR'):
            results = run_suite(os.path.join(RESOURCES_DIR, 'unsafe-catalog.xml'),
                                ElementPathEngine(), suite='qt3')
        self.assertEqual(results[0].test_id, 'catalog_parse')
        self.assertIn('not a safe XML file', results[0].message)

    def test_strict_error_codes(self):
        parser = QT3CatalogParser(QT3_CATALOG)
        catalog = parser.parse()
        runner = TestRunner(ElementPathEngine(), catalog.environments, strict_error_codes=True)

        test_case = TestCase('t1', test='1 div 0', assertion=ExpectedError('FOAR0002'))
        result = runner.run_test_case(test_case, TestSet('set', QT3_CATALOG))
        self.assertIsInstance(result.outcome, Fail)

        runner.strict_error_codes = False
        result = runner.run_test_case(test_case, TestSet('set', QT3_CATALOG))
        self.assertEqual(result.outcome, Pass())
        self.assertIn('error code mismatch', result.message)


class XSDSuiteTest(unittest.TestCase):

    def test_xsd11_engine(self):
        outcomes = get_outcomes(run_suite(XSD_CATALOG, XMLSchemaEngine('1.1')))
        self.assertEqual(len(outcomes), 8)

        self.assertEqual(outcomes['intGroup/intSchema'], Pass())
        self.assertEqual(outcomes['intGroup/intValid'], Pass())
        self.assertEqual(outcomes['intGroup/intInvalid'], Pass())
        self.assertEqual(outcomes['badGroup/badSchema'], Pass())
        self.assertIsInstance(outcomes['badGroup/badInstance'], Skipped)
        self.assertIsInstance(outcomes['noSchema/orphan'], NotApplicable)
        self.assertEqual(outcomes['noSchema/orphan'].message, 'No schema for validation')
        self.assertEqual(outcomes['versioned/assertSchema'], Pass())

        outcome = outcomes['undecided/undecidedSchema']
        self.assertEqual(outcome, Pass())
        self.assertEqual(outcome.message, 'indeterminate validity')

    def test_xsd10_engine(self):
        outcomes = get_outcomes(run_suite(XSD_CATALOG, XMLSchemaEngine('1.0')))
        self.assertEqual(outcomes['intGroup/intInvalid'], Pass())
        self.assertEqual(outcomes['versioned/assertSchema'], Pass())

    def test_lxml_engine(self):
        outcomes = get_outcomes(run_suite(XSD_CATALOG, LxmlEngine()))
        self.assertEqual(outcomes['intGroup/intValid'], Pass())
        self.assertEqual(outcomes['intGroup/intInvalid'], Pass())
        self.assertEqual(outcomes['badGroup/badSchema'], Pass())

    def test_schema_loaded_once_for_group(self):
        engine = XMLSchemaEngine()
        runner = TestRunner(engine, suite='xsd')
        calls = []
        load_schema = engine.load_schema

        def counting_load_schema(source):
            calls.append(source)
            return load_schema(source)

        engine.load_schema = counting_load_schema
        path = os.path.join(RESOURCES_DIR, 'xsd', 'simple', 'int.xsd')
        test_set = TestSet('simple', XSD_CATALOG, test_cases=[
            TestCase('g/schema', kind='schema', schema_documents=(path,), group='g',
                     assertion=AssertValidity('valid')),
            TestCase('g/instance', kind='instance', schema_documents=(path,), group='g',
                     instance=os.path.join(RESOURCES_DIR, 'xsd', 'simple', 'int-valid.xml'),
                     assertion=AssertValidity('valid')),
        ])
        outcomes = get_outcomes(runner.run_test_set(test_set))
        self.assertEqual(outcomes, {'g/schema': Pass(), 'g/instance': Pass()})
        self.assertEqual(len(calls), 1)

    def test_schemas_not_kept_across_groups(self):
        path = os.path.join(RESOURCES_DIR, 'xsd', 'simple', 'int.xsd')
        cache_sizes = []
        runner = TestRunner(XMLSchemaEngine(), suite='xsd',
                            on_result=lambda r: cache_sizes.append(len(runner._schemas)))
        test_set = TestSet('simple', XSD_CATALOG, test_cases=[
            TestCase(f'g{k}/schema', kind='schema', schema_documents=(path,), group=f'g{k}',
                     assertion=AssertValidity('valid'))
            for k in range(5)
        ])
        outcomes = get_outcomes(runner.run_test_set(test_set))
        self.assertTrue(all(x == Pass() for x in outcomes.values()))
        self.assertListEqual(cache_sizes, [1] * 5)
        self.assertEqual(len(runner._schemas), 0)


class XSLT30SuiteTest(unittest.TestCase):

    def test_lxml_engine(self):
        results = run_suite(XSLT30_CATALOG, LxmlEngine())
        self.assertListEqual([r.test_suite for r in results], ['xslt30'] * 5)

        outcomes = get_outcomes(results)
        self.assertEqual(outcomes['basic-001'], Pass())
        self.assertIsInstance(outcomes['basic-002'], NotApplicable)
        self.assertEqual(outcomes['basic-003'], Pass())
        self.assertIsInstance(outcomes['basic-004'], NotApplicable)
        self.assertEqual(outcomes['basic-005'], Pass())

    def test_engine_without_xslt(self):
        outcomes = get_outcomes(run_suite(XSLT30_CATALOG, ElementPathEngine()))
        self.assertTrue(all(isinstance(x, NotApplicable) for x in outcomes.values()))


if __name__ == '__main__':
    unittest.main()
