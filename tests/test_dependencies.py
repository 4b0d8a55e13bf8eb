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
import unittest

from xmlconform.dependencies import Dependency, parse_version, check_spec_token, \
    check_dependency, find_unsatisfied
from xmlconform.engines import ElementPathEngine, LxmlEngine, XMLSchemaEngine
from xmlconform.engines.base import AbstractEngine


class DependenciesTest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.xp20 = ElementPathEngine(xpath_version='2.0')
        cls.xp31 = ElementPathEngine(xpath_version='3.1')
        cls.lxml = LxmlEngine()
        cls.xsd10 = XMLSchemaEngine(xsd_version='1.0')
        cls.xsd11 = XMLSchemaEngine(xsd_version='1.1')

    def test_dependency_string(self):
        self.assertEqual(str(Dependency('spec', 'XP30+')), 'spec=XP30+')
        self.assertEqual(str(Dependency('feature', 'schemaImport', False)),
                         'feature=schemaImport (not satisfied)')

    def test_parse_version(self):
        self.assertEqual(parse_version('3.1'), (3, 1))
        self.assertEqual(parse_version('1.0.2'), (1, 0, 2))
        with self.assertRaises(ValueError):
            parse_version('3.x')

    def test_check_spec_token(self):
        self.assertTrue(check_spec_token('XP20', self.xp20))
        self.assertTrue(check_spec_token('XP20+', self.xp31))
        self.assertTrue(check_spec_token('XP31', self.xp31))
        self.assertFalse(check_spec_token('XP31', self.xp20))
        self.assertFalse(check_spec_token('XP30+', self.xp20))
        self.assertFalse(check_spec_token('XP20', self.xp31))

        # No XQuery nor XSLT support
        self.assertFalse(check_spec_token('XQ10+', self.xp31))
        self.assertFalse(check_spec_token('XT30+', self.xp31))
        self.assertTrue(check_spec_token('XSLT10+', self.lxml))
        self.assertTrue(check_spec_token('XT10', self.lxml))
        self.assertFalse(check_spec_token('XSLT30+', self.lxml))

        self.assertTrue(check_spec_token('XSD10+', self.xsd11))
        self.assertFalse(check_spec_token('XSD11', self.xsd10))

        self.assertFalse(check_spec_token('XP', self.xp31))
        self.assertFalse(check_spec_token('XP3.1', self.xp31))

    def test_invalid_declared_version(self):
        engine = AbstractEngine(xpath='three')
        with self.assertLogs('xmlconform', level='WARNING') as ctx:
            self.assertFalse(check_spec_token('XP30+', engine))
        self.assertIn("invalid xpath version 'three'", ctx.output[0])

    def test_spec_dependencies(self):
        dependency = Dependency('spec', 'XP20+ XQ10+')
        self.assertTrue(check_dependency(dependency, self.xp20))
        self.assertTrue(check_dependency(dependency, self.xp31))
        self.assertFalse(check_dependency(dependency, self.lxml))

        dependency = Dependency('spec', 'XP31 XQ31')
        self.assertFalse(check_dependency(dependency, self.xp20))
        self.assertTrue(check_dependency(dependency, self.xp31))

    def test_feature_dependencies(self):
        dependency = Dependency('feature', 'schemaImport')
        self.assertFalse(check_dependency(dependency, self.xp31))
        self.assertTrue(check_dependency(dependency, self.xsd11))

        dependency = Dependency('feature', 'schemaImport', satisfied=False)
        self.assertTrue(check_dependency(dependency, self.xp31))
        self.assertFalse(check_dependency(dependency, self.xsd11))

        dependency = Dependency('feature', 'higherOrderFunctions')
        self.assertTrue(check_dependency(dependency, self.xp31))
        self.assertFalse(check_dependency(dependency, self.xp20))
        self.assertFalse(check_dependency(dependency, self.lxml))

        dependency = Dependency('feature', 'collection-stability')
        self.assertTrue(check_dependency(dependency, self.xp20))

    def test_xml_version_dependencies(self):
        self.assertTrue(check_dependency(Dependency('xml-version', '1.0'), self.xp31))
        self.assertTrue(check_dependency(Dependency('xml-version', '1.0:4-'), self.xp31))
        self.assertFalse(check_dependency(Dependency('xml-version', '1.1'), self.xp31))
        self.assertTrue(check_dependency(Dependency('xml-version', '1.1', False), self.xp31))

    def test_xsd_version_dependencies(self):
        dependency = Dependency('xsd-version', '1.1')
        self.assertTrue(check_dependency(dependency, self.xsd11))
        self.assertFalse(check_dependency(dependency, self.xsd10))
        self.assertFalse(check_dependency(dependency, self.lxml))

        dependency = Dependency('xsd-version', '1.0 1.1')
        self.assertTrue(check_dependency(dependency, self.xsd10))

        # Decided by the catalog if the engine has no XSD version
        self.assertTrue(check_dependency(dependency, self.xp31))

    def test_unknown_dependency_types(self):
        self.assertTrue(check_dependency(Dependency('limits', 'big_integer'), self.xp31))
        self.assertFalse(
            check_dependency(Dependency('limits', 'big_integer', False), self.xp31)
        )
        self.assertTrue(check_dependency(Dependency('language', 'de'), self.xp31))

    def test_find_unsatisfied(self):
        dependencies = [
            Dependency('spec', 'XP20+'),
            Dependency('feature', 'schemaImport'),
            Dependency('spec', 'XP31'),
        ]
        self.assertIsNone(find_unsatisfied([], self.xp20))
        self.assertIs(find_unsatisfied(dependencies, self.xp31), dependencies[1])
        self.assertIs(find_unsatisfied(dependencies[::2], self.xp20), dependencies[2])
        self.assertIsNone(find_unsatisfied(dependencies[::2], self.xp31))


if __name__ == '__main__':
    unittest.main()
