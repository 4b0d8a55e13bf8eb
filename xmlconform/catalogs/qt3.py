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
Parser for QT3 query-test catalogs (XPath and XQuery test suites).
"""
from xmlconform.assertions import parse_result
from xmlconform.environments import parse_environments
from xmlconform.etree import ElementType, iter_children, find_child, get_attribute
from xmlconform.namespaces import QT3_NAMESPACE
from .base import QUERY_TEST, Catalog, CatalogParser, TestCase, TestSet, TestSetRef


class QT3CatalogParser(CatalogParser):
    """
    Parses catalogs like the QT3 test suite's catalog.xml, that contain
    global environments and <test-set name="..." file="..."/> references.
    """
    dialect = 'query-test'
    suite = 'qt3'
    namespace = QT3_NAMESPACE
    root_tags = ('catalog',)

    def parse_catalog(self, root: ElementType) -> Catalog:
        catalog = Catalog(
            path=self.path,
            dialect=self.dialect,
            name=root.get('test-suite', 'QT3'),
            version=root.get('version'),
            environments=parse_environments(root, self.base_dir),
        )
        for child in iter_children(root, 'test-set'):
            catalog.test_sets.append(TestSetRef(
                name=child.attrib['name'],
                file=self.resolve_path(child.attrib['file'], self.base_dir),
            ))
        return catalog

    def build_test_set(self, root: ElementType, ref: TestSetRef) -> TestSet:
        test_set = TestSet(name=root.get('name', ref.name), file=ref.file)
        base_dir = test_set.base_dir

        test_set.description = self.get_description(root)
        test_set.environments = parse_environments(root, base_dir)
        test_set.dependencies = tuple(self.get_dependencies(root))

        for elem in iter_children(root, 'test-case'):
            test_set.test_cases.append(self.build_test_case(elem, test_set))
        return test_set

    def build_test_case(self, elem: ElementType, test_set: TestSet) -> TestCase:
        base_dir = test_set.base_dir
        test = test_file = None

        child = find_child(elem, 'test')
        if child is not None:
            file = get_attribute(child, 'file')
            if file is not None:
                test_file = self.resolve_path(file, base_dir)
            else:
                test = child.text or ''

        return TestCase(
            name=elem.attrib['name'],
            kind=QUERY_TEST,
            description=self.get_description(elem),
            environment=self.get_environment_ref(elem, base_dir),
            dependencies=test_set.dependencies + tuple(self.get_dependencies(elem)),
            test=test,
            test_file=test_file,
            assertion=parse_result(find_child(elem, 'result'), base_dir),
            base_dir=base_dir,
        )
