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
from pathlib import Path
from xml.etree import ElementTree

from xmlconform.engines import ElementPathEngine
from xmlconform.environments import CONTEXT_ROLE, EMPTY_ENVIRONMENT, Source, Param, \
    Environment, EnvironmentResolver, parse_environment, parse_environments
from xmlconform.exceptions import CatalogError, EnvironmentNotFoundError, SourceLoadError
from xmlconform.namespaces import QT3_NAMESPACE

QT3_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'resources', 'qt3')

ENVIRONMENT = f"""<environment xmlns="{QT3_NAMESPACE}" name="full">
  <namespace prefix="t" uri="http://xmlconform.test/ns"/>
  <source role="." file="docs/works.xml" uri="http://example.com/works.xml">
    <description>A list of employees</description>
  </source>
  <source role="$data" file="local/data.xml"/>
  <param name="factor" select="2" as="xs:integer"/>
  <param name="limit" declared="true"/>
  <schema uri="http://example.com/schema" file="schemas/works.xsd"/>
  <collection uri="http://example.com/docs">
    <source file="docs/works.xml"/>
    <source file="docs/ns.xml"/>
  </collection>
  <static-base-uri uri="http://example.com/"/>
</environment>"""


class ParseEnvironmentsTest(unittest.TestCase):

    def test_parse_environment(self):
        environment = parse_environment(ElementTree.XML(ENVIRONMENT), QT3_DIR)

        self.assertEqual(environment.name, 'full')
        self.assertEqual(repr(environment), "Environment(name='full')")
        self.assertEqual(environment.base_dir, QT3_DIR)
        self.assertDictEqual(dict(environment.namespaces), {'t': 'http://xmlconform.test/ns'})

        self.assertEqual(len(environment.sources), 2)
        self.assertEqual(environment.sources[0], Source(
            role=CONTEXT_ROLE, file='docs/works.xml', uri='http://example.com/works.xml'
        ))
        self.assertEqual(environment.sources[1].role, '$data')

        self.assertEqual(environment.params, (
            Param('factor', '2', 'xs:integer'), Param('limit', declared=True)
        ))
        self.assertEqual(environment.schemas[0].file, 'schemas/works.xsd')
        self.assertEqual(environment.collections[0].uri, 'http://example.com/docs')
        self.assertEqual(len(environment.collections[0].sources), 2)
        self.assertEqual(environment.static_base_uri, 'http://example.com/')
        self.assertIsNone(environment.stylesheet)

    def test_parse_inline_content(self):
        elem = ElementTree.XML(
            '<environment><source role="."><content><![CDATA[<a>1</a>]]></content>'
            '</source><stylesheet file="transform.xsl"/></environment>'
        )
        environment = parse_environment(elem, '')
        self.assertIsNone(environment.name)
        self.assertEqual(environment.sources[0].content, '<a>1</a>')
        self.assertEqual(environment.stylesheet, 'transform.xsl')

    def test_rebound_prefixes(self):
        elem = ElementTree.XML(
            '<environment name="env">'
            '<namespace prefix="p" uri="http://a"/><namespace prefix="p" uri="http://b"/>'
            '</environment>'
        )
        with self.assertLogs('xmlconform', level='WARNING') as ctx:
            environment = parse_environment(elem, '')
        self.assertIn("prefix 'p' rebound", ctx.output[0])
        self.assertEqual(environment.namespaces['p'], 'http://b')

    def test_missing_param_name(self):
        elem = ElementTree.XML('<environment><param select="1"/></environment>')
        with self.assertRaises(CatalogError):
            parse_environment(elem, '')

    def test_parse_environments(self):
        elem = ElementTree.XML(
            '<test-set><environment name="a"/><environment ref="b"/>'
            '<environment name="c"/><test-case name="t1"/></test-set>'
        )
        environments = parse_environments(elem, QT3_DIR)
        self.assertListEqual(list(environments), ['a', 'c'])

        elem = ElementTree.XML('<catalog><environment/></catalog>')
        with self.assertRaises(CatalogError):
            parse_environments(elem, QT3_DIR)

    def test_context_source(self):
        environment = Environment(sources=(Source('$a', 'a.xml'), Source('$b', 'b.xml')))
        self.assertIsNone(environment.get_context_source())
        self.assertEqual(environment.get_context_source(first_source_fallback=True).file,
                         'a.xml')
        self.assertIsNone(EMPTY_ENVIRONMENT.get_context_source(first_source_fallback=True))

        environment = Environment(sources=(Source('.', 'a.xml'), Source('.', 'b.xml')))
        with self.assertRaises(CatalogError):
            environment.get_context_source()


class EnvironmentResolverTest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.engine = ElementPathEngine()
        cls.works = Environment(
            name='works', sources=(Source('.', 'docs/works.xml'),), base_dir=QT3_DIR
        )

    def setUp(self):
        self.resolver = EnvironmentResolver(self.engine, {'works': self.works})

    def test_lookup(self):
        self.assertIs(self.resolver.lookup(None), EMPTY_ENVIRONMENT)
        self.assertIs(self.resolver.lookup(self.works), self.works)
        self.assertIs(self.resolver.lookup('works'), self.works)

        local = Environment(name='works', base_dir=QT3_DIR)
        self.assertIs(self.resolver.lookup('works', {'works': local}), local)

    def test_environment_not_found(self):
        with self.assertRaises(EnvironmentNotFoundError) as ctx:
            self.resolver.lookup('works-mod', {'other': self.works})
        self.assertEqual(ctx.exception.name, 'works-mod')
        self.assertIn('works-mod', str(ctx.exception))

    def test_resolve_context_document(self):
        resolved = self.resolver.resolve('works')
        self.assertFalse(resolved.is_placeholder)
        self.assertEqual(resolved.context_document.getroot().tag, 'works')
        self.assertDictEqual(resolved.variables, {})
        self.assertIsNone(resolved.base_uri)

        # source documents are cached
        self.assertIs(self.resolver.resolve('works').context_document,
                      resolved.context_document)
        self.resolver.clear()
        self.assertIsNot(self.resolver.resolve('works').context_document,
                         resolved.context_document)

    def test_resolve_placeholder_document(self):
        resolved = self.resolver.resolve(None, base_dir=QT3_DIR)
        self.assertTrue(resolved.is_placeholder)
        self.assertEqual(resolved.context_document.getroot().tag, 'empty')
        self.assertEqual(resolved.base_uri, f'{Path(QT3_DIR).as_uri()}/')
        self.assertIs(self.resolver.resolve(None).context_document,
                      resolved.context_document)

    def test_resolve_full_environment(self):
        environment = parse_environment(ElementTree.XML(ENVIRONMENT), QT3_DIR)
        resolved = self.resolver.resolve(environment)

        self.assertIs(resolved.environment, environment)
        self.assertEqual(resolved.context_document.getroot().tag, 'works')
        self.assertListEqual(list(resolved.variables), ['data'])
        self.assertEqual(resolved.variables['data'].getroot().tag, 'data')
        self.assertIs(resolved.documents['http://example.com/works.xml'],
                      resolved.context_document)
        self.assertEqual(len(resolved.collections['http://example.com/docs']), 2)
        self.assertIs(resolved.default_collection,
                      resolved.collections['http://example.com/docs'])
        self.assertEqual(resolved.namespaces, {'t': 'http://xmlconform.test/ns'})
        self.assertEqual(resolved.base_uri, 'http://example.com/')
        self.assertListEqual(resolved.schema_files,
                             [os.path.join(QT3_DIR, 'schemas', 'works.xsd')])
        self.assertEqual(resolved.params, environment.params)

    def test_first_source_fallback(self):
        environment = Environment(sources=(Source('$data', 'local/data.xml'),),
                                  base_dir=QT3_DIR)
        resolved = self.resolver.resolve(environment)
        self.assertTrue(resolved.is_placeholder)
        self.assertIn('data', resolved.variables)

        resolved = self.resolver.resolve(environment, first_source_fallback=True)
        self.assertFalse(resolved.is_placeholder)
        self.assertEqual(resolved.context_document.getroot().tag, 'data')

    def test_inline_sources(self):
        environment = Environment(sources=(Source('.', content='<a>1</a>'),))
        resolved = self.resolver.resolve(environment)
        self.assertEqual(resolved.context_document.getroot().text, '1')

        environment = Environment(sources=(Source('.', content='<a>1</b>'),))
        with self.assertRaises(SourceLoadError) as ctx:
            self.resolver.resolve(environment)
        self.assertIn('cannot parse inline source', str(ctx.exception))

        environment = Environment(sources=(Source('.'),))
        with self.assertRaises(SourceLoadError):
            self.resolver.resolve(environment)

    def test_missing_source_file(self):
        environment = Environment(sources=(Source('.', 'docs/missing.xml'),),
                                  base_dir=QT3_DIR)
        with self.assertRaises(SourceLoadError) as ctx:
            self.resolver.resolve(environment)
        self.assertEqual(ctx.exception.path, os.path.join(QT3_DIR, 'docs', 'missing.xml'))
        self.assertIn('not found', str(ctx.exception))

    def test_malformed_source_file(self):
        environment = Environment(sources=(Source('.', 'broken.xml'),), base_dir=QT3_DIR)
        with self.assertRaises(SourceLoadError) as ctx:
            self.resolver.resolve(environment)
        self.assertIn('cannot parse source file', str(ctx.exception))

    def test_cache_size(self):
        resolver = EnvironmentResolver(self.engine, cache_size=1)
        works = Source('.', 'docs/works.xml')
        data = Source('.', 'local/data.xml')
        environment = Environment(base_dir=QT3_DIR)

        document = resolver.load_source(works, environment)
        self.assertIs(resolver.load_source(works, environment), document)
        resolver.load_source(data, environment)
        self.assertIsNot(resolver.load_source(works, environment), document)


if __name__ == '__main__':
    unittest.main()
