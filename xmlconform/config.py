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
Configuration of test suites and of test runs.
"""
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from xmlconform.exceptions import ConfigurationError

SUITES_DIR_ENV = 'XMLCONFORM_SUITES_DIR'
DEFAULT_SUITES_DIR = 'w3c'


@dataclass(frozen=True, slots=True)
class SuiteConfig:
    """
    The configuration of a known test suite.

    :param name: the short name of the suite, e.g. 'qt3'.
    :param dialect: the dialect of the catalogs of the suite.
    :param title: a human readable title.
    :param catalog: the default path of the catalog, relative to the suites directory.
    :param operation: the engine operation driven by the suite.
    """
    name: str
    dialect: str
    title: str
    catalog: str
    operation: str


KNOWN_SUITES = {
    'qt3': SuiteConfig(
        'qt3', 'query-test', 'W3C XPath/XQuery test suite (QT3)',
        'qt3tests/catalog.xml', 'query'
    ),
    'xslt30': SuiteConfig(
        'xslt30', 'transform-test', 'W3C XSLT 3.0 test suite',
        'xslt30-test/catalog.xml', 'transform'
    ),
    'xsd': SuiteConfig(
        'xsd', 'schema-test', 'W3C XML Schema test suite (XSTS)',
        'xsdtests/suite.xml', 'validate'
    ),
}


def get_suite_config(name: str) -> SuiteConfig:
    try:
        return KNOWN_SUITES[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown test suite {name!r} (available suites: {', '.join(KNOWN_SUITES)})"
        ) from None


def get_suites_dir() -> str:
    """Returns the root directory of test suites, overridable with an environment variable."""
    return os.environ.get(SUITES_DIR_ENV) or DEFAULT_SUITES_DIR


def load_skip_file(path: str) -> frozenset[str]:
    """
    Loads a file with the ids of the test cases to skip, one for each line.
    Empty lines and comments starting with '#' are ignored.
    """
    skip = set()
    try:
        with open(path, encoding='utf-8') as fp:
            for line in fp:
                line = line.split('#', 1)[0].strip()
                if line:
                    skip.add(line)
    except OSError as err:
        raise ConfigurationError(f"cannot read skip file {path!r}: {err}") from None
    return frozenset(skip)


@dataclass
class RunConfig:
    """
    The configuration of a test run.

    :param engine: the name of the engine.
    :param suite: the configuration of the test suite.
    :param catalog: an explicit path of the catalog file, overrides the default.
    :param engine_options: version options for building the engine.
    :param filter: a regex pattern for selecting test sets by name.
    :param skip: the ids of the test cases to skip.
    :param strict_errors: if `True` expected error codes are compared.
    :param max_failures: the max number of failures listed in a plain summary.
    """
    engine: str
    suite: SuiteConfig
    catalog: Optional[str] = None
    engine_options: dict[str, Any] = field(default_factory=dict)
    filter: Optional[str] = None
    skip: frozenset[str] = frozenset()
    strict_errors: bool = False
    max_failures: int = 10

    @property
    def catalog_path(self) -> str:
        if self.catalog is not None:
            return self.catalog
        return os.path.join(get_suites_dir(), self.suite.catalog)

    def get_pattern(self) -> Optional['re.Pattern[str]']:
        if self.filter is None:
            return None
        try:
            return re.compile(self.filter)
        except re.error as err:
            raise ConfigurationError(f"invalid filter {self.filter!r}: {err}") from None

    def check(self) -> None:
        """
        Checks the configuration before a run.

        :raises ConfigurationError: if the catalog is missing or an option is invalid.
        """
        if not os.path.isfile(self.catalog_path):
            raise ConfigurationError(f"catalog file {self.catalog_path!r} not found")
        elif self.max_failures < 0:
            raise ConfigurationError("the max number of failures must be non-negative")
        self.get_pattern()
