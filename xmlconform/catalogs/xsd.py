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
Parser for W3C XML Schema test suite (XSTS) catalogs.
"""
import os
from typing import Optional

from xmlconform.assertions import Assertion, AssertValidity, VersionedValidity, \
    UnknownAssertion, parse_assertion
from xmlconform.dependencies import Dependency
from xmlconform.etree import ElementType, iter_children, iter_descendants, \
    find_child, get_attribute
from xmlconform.namespaces import XSTS_NAMESPACE
from .base import SCHEMA_TEST, INSTANCE_TEST, Catalog, CatalogParser, \
    TestCase, TestSet, TestSetRef


class XSDCatalogParser(CatalogParser):
    """
    Parses schema-test suites. The root <testSuite> references test-set files
    with xlink:href attributes. A test set has groups, each one with a schema
    test and the instance tests to validate with the schema of the group.
    """
    dialect = 'schema-test'
    suite = 'xsd'
    namespace = XSTS_NAMESPACE
    root_tags = ('testSuite',)

    def parse_catalog(self, root: ElementType) -> Catalog:
        catalog = Catalog(
            path=self.path,
            dialect=self.dialect,
            name=root.get('name', 'XSTS'),
            version=root.get('schemaVersion') or root.get('version'),
        )
        for child in iter_descendants(root, 'testSetRef'):
            href = get_attribute(child, 'href')
            if href is None:
                continue

            file = self.resolve_path(href, self.base_dir)
            catalog.test_sets.append(TestSetRef(
                name=os.path.splitext(os.path.basename(file))[0],
                file=file,
            ))
        return catalog

    def build_test_set(self, root: ElementType, ref: TestSetRef) -> TestSet:
        test_set = TestSet(name=root.get('name', ref.name), file=ref.file)
        base_dir = test_set.base_dir
        set_version = root.get('version')

        test_set.description = self.get_documentation(root)
        for group in iter_children(root, 'testGroup'):
            group_name = group.attrib['name']
            group_version = group.get('version', set_version)
            description = self.get_documentation(group)
            names = set()
            schema_documents: tuple[str, ...] = ()

            schema_test = find_child(group, 'schemaTest')
            if schema_test is not None:
                schema_documents = tuple(
                    self.resolve_path(href, base_dir)
                    for href in (get_attribute(e, 'href')
                                 for e in iter_children(schema_test, 'schemaDocument'))
                    if href is not None
                )
                name = f"{group_name}/{schema_test.attrib['name']}"
                names.add(name)
                test_set.test_cases.append(TestCase(
                    name=name,
                    kind=SCHEMA_TEST,
                    description=description,
                    dependencies=self.get_version_dependencies(schema_test, group_version),
                    schema_documents=schema_documents,
                    group=group_name,
                    assertion=self.get_expected(schema_test),
                    base_dir=base_dir,
                ))

            for instance_test in iter_children(group, 'instanceTest'):
                child = find_child(instance_test, 'instanceDocument')
                href = get_attribute(child, 'href') if child is not None else None

                name = f"{group_name}/{instance_test.attrib['name']}"
                if name in names:
                    name += '-instance'
                names.add(name)

                test_set.test_cases.append(TestCase(
                    name=name,
                    kind=INSTANCE_TEST,
                    description=description,
                    dependencies=self.get_version_dependencies(instance_test, group_version),
                    schema_documents=schema_documents,
                    instance=self.resolve_path(href, base_dir) if href else None,
                    group=group_name,
                    assertion=self.get_expected(instance_test),
                    base_dir=base_dir,
                ))

        return test_set

    def get_documentation(self, elem: ElementType) -> str:
        for annotation in iter_children(elem, 'annotation'):
            for child in iter_children(annotation, 'documentation'):
                text = ''.join(child.itertext())
                if text.strip():
                    return ' '.join(text.split())
        return ''

    def get_version_dependencies(self, elem: ElementType,
                                 default: Optional[str] = None) -> tuple[Dependency, ...]:
        version = elem.get('version', default)
        if not version:
            return ()
        return (Dependency('xsd-version', version),)

    def get_expected(self, elem: ElementType) -> Assertion:
        items = [parse_assertion(e) for e in iter_children(elem, 'expected')]
        validities = [x for x in items if isinstance(x, AssertValidity)]
        if not validities:
            return items[0] if items else UnknownAssertion('expected')
        elif len(validities) == 1 and validities[0].version is None:
            return validities[0]
        return VersionedValidity(tuple(validities))
