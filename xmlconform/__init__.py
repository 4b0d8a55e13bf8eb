#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
__version__ = '1.0.0'
__author__ = "Davide Brunato"
__contact__ = "brunato@sissa.it"
__copyright__ = "Copyright 2024-2025, SISSA"
__license__ = "MIT"
__status__ = "Beta"

# Imports here are considered as stable API, other internal calls may change.

from .exceptions import XMLConformError, ConfigurationError, CatalogError, \
    EnvironmentNotFoundError, SourceLoadError, DependencyError, EngineError, \
    UnsupportedOperation, EngineFault

from .sequences import ResultItem, ResultSequence, ValidationError, ValidationResult
from .outcomes import Pass, Fail, Error, NotApplicable, Skipped, TestOutcome, TestResult
from .dependencies import Dependency, check_dependency
from .assertions import Assertion, EvaluationContext, evaluate, parse_result
from .environments import Environment, EnvironmentResolver, ResolvedEnvironment
from .catalogs import Catalog, CatalogParser, TestCase, TestSet, get_catalog_parser
from .engines import AbstractEngine, ENGINES, get_engine, register_engine
from .runner import TestRunner, run_suite
from .reporter import ComplianceAggregator, ComplianceReport, ComplianceSummary, \
    compare_reports

__all__ = ['XMLConformError', 'ConfigurationError', 'CatalogError',
           'EnvironmentNotFoundError', 'SourceLoadError', 'DependencyError',
           'EngineError', 'UnsupportedOperation', 'EngineFault',
           'ResultItem', 'ResultSequence', 'ValidationError', 'ValidationResult',
           'Pass', 'Fail', 'Error', 'NotApplicable', 'Skipped', 'TestOutcome',
           'TestResult', 'Dependency', 'check_dependency', 'Assertion',
           'EvaluationContext', 'evaluate', 'parse_result', 'Environment',
           'EnvironmentResolver', 'ResolvedEnvironment', 'Catalog', 'CatalogParser',
           'TestCase', 'TestSet', 'get_catalog_parser', 'AbstractEngine', 'ENGINES',
           'get_engine', 'register_engine', 'TestRunner', 'run_suite',
           'ComplianceAggregator', 'ComplianceReport', 'ComplianceSummary',
           'compare_reports']
