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
Base classes for catalog data and catalog parsers.
"""
import os
import re
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

from xmlconform.assertions import Assertion, AllOf
from xmlconform.dependencies import Dependency
from xmlconform.environments import Environment, EnvironmentRefType, parse_environment
from xmlconform.etree import ElementType, parse_catalog_file, iter_children, \
    find_child, child_text, get_attribute
from xmlconform.exceptions import CatalogError
from xmlconform.namespaces import local_name

logger = logging.getLogger('xmlconform')

# Kinds of test cases, each one executed with a different engine operation.
QUERY_TEST = 'query'
TRANSFORM_TEST = 'transform'
SCHEMA_TEST = 'schema'
INSTANCE_TEST = 'instance'


@dataclass(frozen=True, slots=True)
class TestSetRef:
    """A reference to a test-set file, with an absolute path."""
    __test__: ClassVar[bool] = False

    name: str
    file: str


@dataclass
class Catalog:
    """
    A test catalog, with the global environments and the references to
    the test sets in declaration order.
    """
    path: str
    dialect: str
    name: str = ''
    version: Optional[str] = None
    environments: dict[str, Environment] = field(default_factory=dict)
    test_sets: list[TestSetRef] = field(default_factory=list)

    def __repr__(self) -> str:
        return '%s(path=%r, dialect=%r)' % (self.__class__.__name__, self.path, self.dialect)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(self.path)


@dataclass(frozen=True)
class TestCase:
    """
    A test case of a test set. Immutable after catalog parsing.

    :param name: the name of the test case, unique within its test set.
    :param kind: the kind of the test, that selects the engine operation.
    :param description: the description of the test case.
    :param environment: a named environment reference, an inline environment \
    or `None`.
    :param dependencies: the dependencies, including the ones of the test set.
    :param test: the text of the expression under test.
    :param test_file: the path of a file containing the expression under test.
    :param stylesheet: the path of the stylesheet for transform tests.
    :param initial_template: the initial template for transform tests.
    :param initial_mode: the initial mode for transform tests.
    :param params: the stylesheet parameters, a tuple of (name, select) couples.
    :param schema_documents: the paths of the schema documents for schema tests.
    :param instance: the path of the instance document for instance tests.
    :param group: the group of schema and instance tests.
    :param assertion: the expected result.
    :param base_dir: the directory of the test-set file.
    """
    __test__: ClassVar[bool] = False

    name: str
    kind: str = QUERY_TEST
    description: str = ''
    environment: EnvironmentRefType = None
    dependencies: tuple[Dependency, ...] = ()
    test: Optional[str] = None
    test_file: Optional[str] = None
    stylesheet: Optional[str] = None
    initial_template: Optional[str] = None
    initial_mode: Optional[str] = None
    params: tuple[tuple[str, str], ...] = ()
    schema_documents: tuple[str, ...] = ()
    instance: Optional[str] = None
    group: Optional[str] = None
    assertion: Assertion = AllOf()
    base_dir: str = ''

    def __repr__(self) -> str:
        return '%s(name=%r)' % (self.__class__.__name__, self.name)

    def get_test(self) -> Optional[str]:
        """
        Returns the text of the expression under test.

        :raises OSError: if the test file can't be read.
        """
        if self.test is not None or self.test_file is None:
            return self.test
        with open(self.test_file, encoding='utf-8') as fp:
            return fp.read()


@dataclass
class TestSet:
    """A test set, parsed from a test-set file, with its test cases in document order."""
    __test__: ClassVar[bool] = False

    name: str
    file: str
    description: str = ''
    environments: dict[str, Environment] = field(default_factory=dict)
    dependencies: tuple[Dependency, ...] = ()
    test_cases: list[TestCase] = field(default_factory=list)

    def __repr__(self) -> str:
        return '%s(name=%r)' % (self.__class__.__name__, self.name)

    def __len__(self) -> int:
        return len(self.test_cases)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self.test_cases)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(self.file)


class CatalogParser:
    """
    Base class for catalog parsers. The catalog is parsed eagerly, with its
    global environments, while test sets are parsed lazily, one file at time.

    :param path: the path of the catalog file.
    """
    dialect: ClassVar[str] = ''
    suite: ClassVar[str] = ''
    root_tags: ClassVar[tuple[str, ...]] = ()

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)

    def __repr__(self) -> str:
        return '%s(path=%r)' % (self.__class__.__name__, self.path)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(self.path)

    def parse(self) -> Catalog:
        """
        Parses the catalog file.

        :raises CatalogError: if the catalog is unreadable or malformed.
        """
        root = parse_catalog_file(self.path)
        if local_name(root.tag) not in self.root_tags:
            raise CatalogError(
                f"{self.path!r} is not a {self.dialect} catalog "
                f"(root element <{local_name(root.tag)}>)", self.path
            )

        try:
            return self.parse_catalog(root)
        except KeyError as err:
            raise CatalogError(f"missing attribute {err} in {self.path!r}", self.path) from None

    def parse_test_set(self, ref: TestSetRef) -> TestSet:
        """
        Parses a test-set file.

        :raises CatalogError: if the test-set file is unreadable or malformed.
        """
        root = parse_catalog_file(ref.file)
        try:
            return self.build_test_set(root, ref)
        except KeyError as err:
            raise CatalogError(f"missing attribute {err} in {ref.file!r}", ref.file) from None

    def iter_test_set_refs(self, catalog: Catalog,
                           pattern: Union[None, str, 're.Pattern[str]'] = None) \
            -> Iterator[TestSetRef]:
        """Iterates the test-set references, selecting them with a regex pattern."""
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        for ref in catalog.test_sets:
            if pattern is None or pattern.search(ref.name) is not None:
                yield ref

    def parse_catalog(self, root: ElementType) -> Catalog:
        raise NotImplementedError()

    def build_test_set(self, root: ElementType, ref: TestSetRef) -> TestSet:
        raise NotImplementedError()

    ###
    # Helpers for dialects that share the query-test vocabulary
    def resolve_path(self, path: str, base_dir: str) -> str:
        return os.path.normpath(os.path.join(base_dir, path))

    def get_description(self, elem: ElementType) -> str:
        return ' '.join((child_text(elem, 'description') or '').split())

    def get_dependencies(self, elem: ElementType) -> list[Dependency]:
        """Gets the dependencies declared in <dependency> children of an element."""
        dependencies = []
        for child in iter_children(elem, 'dependency'):
            dependencies.append(Dependency(
                type=child.attrib['type'],
                value=child.get('value', ''),
                satisfied=child.get('satisfied', 'true').strip() not in ('false', '0'),
            ))
        return dependencies

    def get_environment_ref(self, elem: ElementType, base_dir: str) -> EnvironmentRefType:
        child = find_child(elem, 'environment')
        if child is None:
            return None

        ref = get_attribute(child, 'ref')
        if ref is not None:
            return ref
        return parse_environment(child, base_dir)
