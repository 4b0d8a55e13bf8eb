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
Parser for XSLT 3.0 transform-test catalogs.
"""
from xmlconform.assertions import parse_result
from xmlconform.dependencies import Dependency
from xmlconform.etree import ElementType, iter_children, find_child, get_attribute
from xmlconform.namespaces import XSLT_TEST_NAMESPACE, local_name
from .base import TRANSFORM_TEST, TestCase, TestSet
from .qt3 import QT3CatalogParser


class XSLT30CatalogParser(QT3CatalogParser):
    """
    Parses XSLT 3.0 catalogs. The catalog layout is the same as QT3, but
    test cases declare stylesheets, initial templates and modes, and the
    dependencies are also declared as children of a <dependencies> element,
    each one named by its dependency type.
    """
    dialect = 'transform-test'
    suite = 'xslt30'
    namespace = XSLT_TEST_NAMESPACE

    def get_dependencies(self, elem: ElementType) -> list[Dependency]:
        dependencies = super().get_dependencies(elem)
        for container in iter_children(elem, 'dependencies'):
            for child in iter_children(container):
                dependencies.append(Dependency(
                    type=local_name(child.tag),
                    value=child.get('value', ''),
                    satisfied=child.get('satisfied', 'true').strip() not in ('false', '0'),
                ))
        return dependencies

    def build_test_case(self, elem: ElementType, test_set: TestSet) -> TestCase:
        base_dir = test_set.base_dir
        stylesheet = initial_template = initial_mode = None
        params = []

        test = find_child(elem, 'test')
        if test is not None:
            for child in iter_children(test, 'stylesheet'):
                file = get_attribute(child, 'file')
                if file is not None and get_attribute(child, 'role') != 'secondary':
                    stylesheet = self.resolve_path(file, base_dir)
                    break

            child = find_child(test, 'initial-template')
            if child is not None:
                initial_template = get_attribute(child, 'name')

            child = find_child(test, 'initial-mode')
            if child is not None:
                initial_mode = get_attribute(child, 'name')

            for child in iter_children(test, 'param'):
                name = get_attribute(child, 'name')
                select = get_attribute(child, 'select')
                if name is not None and select is not None:
                    params.append((name, select))

        return TestCase(
            name=elem.attrib['name'],
            kind=TRANSFORM_TEST,
            description=self.get_description(elem),
            environment=self.get_environment_ref(elem, base_dir),
            dependencies=test_set.dependencies + tuple(self.get_dependencies(elem)),
            stylesheet=stylesheet,
            initial_template=initial_template,
            initial_mode=initial_mode,
            params=tuple(params),
            assertion=parse_result(find_child(elem, 'result'), base_dir),
            base_dir=base_dir,
        )
