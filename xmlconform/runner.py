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
Test runner: executes test cases with an engine and judges the outcomes.

Each test case goes through the states::

    PendingDependencies -> EnvironmentLoaded -> Executed -> Judged -> Reported

A test case that can't proceed is reported with a terminal outcome (e.g. an
unsatisfied dependency yields `NotApplicable`). Every test case yields exactly
one test result, also when the engine crashes: faults are intercepted at the
boundary of the single test case.
"""
import enum
import logging
import re
import time
from collections.abc import Callable, Collection, Iterator, Mapping
from typing import Any, Optional, Union

from xmlconform.aliases import ExecutionOutcomeType, ResultCallbackType
from xmlconform.assertions import EvaluationContext, evaluate, repr_outcome
from xmlconform.catalogs import QUERY_TEST, TRANSFORM_TEST, SCHEMA_TEST, \
    INSTANCE_TEST, Catalog, CatalogParser, TestCase, TestSet, get_catalog_parser
from xmlconform.dependencies import find_unsatisfied
from xmlconform.environments import Environment, EnvironmentResolver, \
    ResolvedEnvironment
from xmlconform.exceptions import CatalogError, DependencyError, EngineError, \
    EngineFault, EnvironmentNotFoundError, SourceLoadError, UnsupportedOperation
from xmlconform.helpers import truncate
from xmlconform.outcomes import Error, NotApplicable, Skipped, TestOutcome, TestResult
from xmlconform.protocols import EngineProtocol
from xmlconform.sequences import ValidationError, ValidationResult

logger = logging.getLogger('xmlconform')

MAX_DETAIL_LENGTH = 500


class ExecutionState(enum.Enum):
    PENDING_DEPENDENCIES = 'PendingDependencies'
    ENVIRONMENT_LOADED = 'EnvironmentLoaded'
    EXECUTED = 'Executed'
    JUDGED = 'Judged'
    REPORTED = 'Reported'


class TestExecution:
    """The mutable state of a single test case execution, private to the runner."""
    __test__ = False

    def __init__(self, test_case: TestCase, test_set: TestSet) -> None:
        self.test_case = test_case
        self.test_set = test_set
        self.state = ExecutionState.PENDING_DEPENDENCIES
        self.outcome: Optional[TestOutcome] = None
        self.execution: Optional[ExecutionOutcomeType] = None
        self.context: Optional[EvaluationContext] = None
        self.start_time = time.perf_counter()

    def advance(self, state: ExecutionState) -> None:
        logger.debug("%s/%s: %s -> %s", self.test_set.name, self.test_case.name,
                     self.state.value, state.value)
        self.state = state

    def stop(self, outcome: TestOutcome) -> TestOutcome:
        self.outcome = outcome
        return outcome

    @property
    def duration(self) -> float:
        return time.perf_counter() - self.start_time


class TestRunner:
    """
    Runs the test cases of a catalog with an engine.

    :param engine: the engine under test.
    :param environments: the global environments of the catalog.
    :param suite: the name of the test suite, reported in the test results.
    :param skip: the ids of the test cases to skip, plain or qualified \
    with the test set name (e.g. 'fn-abs/fn-abs-1').
    :param strict_error_codes: if `True` expected error codes are compared.
    :param on_result: an optional callback called for each test result, in order.
    """
    __test__ = False

    def __init__(self, engine: EngineProtocol,
                 environments: Optional[Mapping[str, Environment]] = None,
                 suite: str = '',
                 skip: Collection[str] = (),
                 strict_error_codes: bool = False,
                 on_result: Optional[ResultCallbackType] = None) -> None:
        self.engine = engine
        self.suite = suite
        self.skip = frozenset(skip)
        self.strict_error_codes = strict_error_codes
        self.on_result = on_result
        self.resolver = EnvironmentResolver(engine, environments)

        # Schema of the current group of schema tests, or the error of its loading
        self._schemas: dict[tuple[str, str], Any] = {}

    def __repr__(self) -> str:
        return '%s(engine=%r, suite=%r)' % (self.__class__.__name__,
                                            self.engine.name, self.suite)

    def is_skipped(self, test_case: TestCase, test_set: TestSet) -> bool:
        return test_case.name in self.skip or \
            f'{test_set.name}/{test_case.name}' in self.skip

    def get_evaluation_context(self, environment: Optional[ResolvedEnvironment] = None) \
            -> EvaluationContext:
        engine = self.engine

        def query(expression: str, result: Any) -> Any:
            return engine.evaluate_with_result(expression, result, environment)

        return EvaluationContext(
            query=query,
            strict_error_codes=self.strict_error_codes,
            xsd_version=engine.declared_version('xsd'),
        )

    ###
    # Test runs
    def run(self, parser: CatalogParser, catalog: Catalog,
            pattern: Union[None, str, 're.Pattern[str]'] = None) -> Iterator[TestResult]:
        """
        Runs the test sets of a catalog in declaration order. A test-set file that
        can't be parsed is reported with a single error result.
        """
        for ref in parser.iter_test_set_refs(catalog, pattern):
            try:
                test_set = parser.parse_test_set(ref)
            except CatalogError as err:
                logger.error("cannot parse test set %r: %s", ref.name, err)
                yield self.report(TestResult(
                    test_id=f'{ref.name}/parse',
                    test_set=ref.name,
                    test_suite=self.suite,
                    description=f'parsing of test set file {ref.file}',
                    outcome=Error(str(err)),
                ))
            else:
                logger.info("running test set %r (%d test cases)", test_set.name, len(test_set))
                yield from self.run_test_set(test_set)

    def run_test_set(self, test_set: TestSet) -> Iterator[TestResult]:
        for test_case in test_set:
            yield self.run_test_case(test_case, test_set)
        self._schemas.clear()

    def run_test_case(self, test_case: TestCase, test_set: TestSet) -> TestResult:
        """Runs a single test case. Never raises for errors of the test case or the engine."""
        execution = TestExecution(test_case, test_set)

        if self.is_skipped(test_case, test_set):
            outcome: TestOutcome = Skipped('listed in skip file')
        else:
            try:
                outcome = self.execute(execution)
            except UnsupportedOperation as err:
                outcome = NotApplicable(err.message)
            except EngineError as err:
                outcome = Error(f"unexpected engine error: {err}")
            except EnvironmentNotFoundError as err:
                outcome = Error(err.message)
            except (SourceLoadError, CatalogError) as err:
                outcome = Error(str(err))
            except OSError as err:
                outcome = Error(f"I/O error: {err}")
            except Exception as err:
                fault = EngineFault(f'{type(err).__name__}: {err}')
                logger.debug("fault in test case %r", test_case.name, exc_info=True)
                outcome = Error(f"engine fault: {fault}")

        if execution.state is not ExecutionState.JUDGED:
            logger.debug("%s/%s: terminated at state %s", test_set.name,
                         test_case.name, execution.state.value)

        actual = None
        if execution.execution is not None:
            actual = truncate(repr_outcome(execution.execution), MAX_DETAIL_LENGTH)

        result = TestResult(
            test_id=test_case.name,
            test_set=test_set.name,
            test_suite=self.suite,
            description=test_case.description,
            outcome=outcome,
            expected=truncate(str(test_case.assertion), MAX_DETAIL_LENGTH),
            actual=actual,
            duration=execution.duration,
        )
        execution.advance(ExecutionState.REPORTED)
        return self.report(result)

    def report(self, result: TestResult) -> TestResult:
        if self.on_result is not None:
            self.on_result(result)
        return result

    ###
    # Execution of test cases
    def execute(self, execution: TestExecution) -> TestOutcome:
        test_case = execution.test_case

        dependency = find_unsatisfied(test_case.dependencies, self.engine)
        if dependency is not None:
            return execution.stop(NotApplicable(DependencyError(dependency).message))

        runner: Callable[[TestExecution], Optional[TestOutcome]]
        if test_case.kind == QUERY_TEST:
            runner = self.execute_query
        elif test_case.kind == TRANSFORM_TEST:
            runner = self.execute_transform
        elif test_case.kind == SCHEMA_TEST:
            runner = self.execute_schema_test
        elif test_case.kind == INSTANCE_TEST:
            runner = self.execute_instance_test
        else:
            return execution.stop(Error(f"unknown kind of test case {test_case.kind!r}"))

        outcome = runner(execution)
        if outcome is not None:
            return execution.stop(outcome)

        execution.advance(ExecutionState.EXECUTED)
        assert execution.execution is not None
        outcome = evaluate(test_case.assertion, execution.execution, execution.context)
        execution.advance(ExecutionState.JUDGED)
        return execution.stop(outcome)

    def resolve_environment(self, execution: TestExecution,
                            first_source_fallback: bool = False) -> ResolvedEnvironment:
        environment = self.resolver.resolve(
            reference=execution.test_case.environment,
            local_environments=execution.test_set.environments,
            base_dir=execution.test_set.base_dir,
            first_source_fallback=first_source_fallback,
        )
        execution.advance(ExecutionState.ENVIRONMENT_LOADED)
        return environment

    def execute_query(self, execution: TestExecution) -> Optional[TestOutcome]:
        test_case = execution.test_case
        environment = self.resolve_environment(execution)

        expression = test_case.get_test()
        if expression is None:
            return Error("test case has no expression to evaluate")

        try:
            execution.execution = self.engine.evaluate_query(
                environment.context_document, expression, environment
            )
        except UnsupportedOperation:
            raise
        except EngineError as err:
            execution.execution = err

        execution.context = self.get_evaluation_context(environment)
        return None

    def execute_transform(self, execution: TestExecution) -> Optional[TestOutcome]:
        test_case = execution.test_case
        environment = self.resolve_environment(execution, first_source_fallback=True)

        stylesheet = test_case.stylesheet or environment.stylesheet
        if stylesheet is None:
            return Error("test case has no stylesheet")

        document = None if environment.is_placeholder else environment.context_document
        params = dict(test_case.params)
        params.update((p.name, p.select) for p in environment.params if p.select is not None)

        try:
            execution.execution = self.engine.transform(
                document, stylesheet,
                base_uri=environment.base_uri,
                initial_template=test_case.initial_template,
                initial_mode=test_case.initial_mode,
                params=params,
            )
        except UnsupportedOperation:
            raise
        except EngineError as err:
            execution.execution = err

        execution.context = self.get_evaluation_context(environment)
        return None

    def load_group_schema(self, test_case: TestCase, test_set: TestSet) \
            -> Union[Any, EngineError]:
        """
        Loads the schema of a group of schema tests, once for each group. Only
        the schema of the last group is kept. Returns the schema or the error
        of the engine.
        """
        key = (test_set.name, test_case.group or '')
        try:
            schema = self._schemas[key]
        except KeyError:
            try:
                schema = self.engine.load_schema(list(test_case.schema_documents))
            except UnsupportedOperation:
                raise
            except EngineError as err:
                schema = err
                logger.debug("schema of group %r not loaded: %s", key[1], err)
            self._schemas.clear()
            self._schemas[key] = schema
        return schema

    def execute_schema_test(self, execution: TestExecution) -> Optional[TestOutcome]:
        test_case = execution.test_case
        if not test_case.schema_documents:
            return NotApplicable("No schema documents to load")

        execution.advance(ExecutionState.ENVIRONMENT_LOADED)
        schema = self.load_group_schema(test_case, execution.test_set)

        if isinstance(schema, EngineError):
            execution.execution = ValidationResult(
                False, (ValidationError(str(schema)),), self.engine.declared_version('xsd')
            )
        else:
            execution.execution = ValidationResult(
                True, version=self.engine.declared_version('xsd')
            )
        execution.context = self.get_evaluation_context()
        return None

    def execute_instance_test(self, execution: TestExecution) -> Optional[TestOutcome]:
        test_case = execution.test_case
        if not test_case.schema_documents:
            return NotApplicable("No schema for validation")
        elif test_case.instance is None:
            return Error("instance test has no instance document")

        schema = self.load_group_schema(test_case, execution.test_set)
        if isinstance(schema, EngineError):
            return Skipped(f"schema of group {test_case.group!r} not loaded")

        try:
            document = self.engine.parse_file(test_case.instance)
        except EngineError as err:
            # a not well-formed instance is invalid
            execution.execution = err
        else:
            execution.advance(ExecutionState.ENVIRONMENT_LOADED)
            try:
                execution.execution = self.engine.validate(document, schema)
            except UnsupportedOperation:
                raise
            except EngineError as err:
                execution.execution = err

        execution.context = self.get_evaluation_context()
        return None

    def clear(self) -> None:
        """Clears the caches of source documents and of schemas."""
        self.resolver.clear()
        self._schemas.clear()


def run_suite(catalog_path: str,
              engine: EngineProtocol,
              suite: Optional[str] = None,
              pattern: Union[None, str, 're.Pattern[str]'] = None,
              skip: Collection[str] = (),
              strict_error_codes: bool = False,
              on_result: Optional[ResultCallbackType] = None) -> list[TestResult]:
    """
    Runs a test suite from its catalog file. An unreadable or malformed catalog
    is reported with a single error result, so the run always completes.

    :param catalog_path: the path of the catalog file.
    :param engine: the engine under test.
    :param suite: the name of the suite, detected from the catalog if not provided.
    :param pattern: a regex for selecting the test sets by name.
    :param skip: the ids of the test cases to skip.
    :param strict_error_codes: if `True` expected error codes are compared.
    :param on_result: an optional callback called for each test result, in order.
    """
    try:
        parser = get_catalog_parser(catalog_path, suite)
        catalog = parser.parse()
    except CatalogError as err:
        logger.error("cannot parse catalog %r: %s", catalog_path, err)
        result = TestResult(
            test_id='catalog_parse',
            test_set='catalog',
            test_suite=suite or '',
            description=f'parsing of catalog file {catalog_path}',
            outcome=Error(str(err)),
        )
        if on_result is not None:
            on_result(result)
        return [result]

    logger.info("loaded %s catalog %r with %d test sets",
                catalog.dialect, catalog.name, len(catalog.test_sets))

    runner = TestRunner(
        engine=engine,
        environments=catalog.environments,
        suite=parser.suite,
        skip=skip,
        strict_error_codes=strict_error_codes,
        on_result=on_result,
    )
    return list(runner.run(parser, catalog, pattern))

