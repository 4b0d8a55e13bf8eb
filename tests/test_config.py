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
import re
import unittest
from unittest import mock

from xmlconform.config import SUITES_DIR_ENV, KNOWN_SUITES, RunConfig, \
    get_suite_config, get_suites_dir, load_skip_file
from xmlconform.exceptions import ConfigurationError

RESOURCES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'resources')


class ConfigTest(unittest.TestCase):

    def test_suite_configs(self):
        self.assertListEqual(list(KNOWN_SUITES), ['qt3', 'xslt30', 'xsd'])
        self.assertEqual(get_suite_config('xsd').dialect, 'schema-test')
        self.assertEqual(get_suite_config('xslt30').operation, 'transform')

        with self.assertRaises(ConfigurationError) as ctx:
            get_suite_config('xquery')
        self.assertIn('available suites: qt3, xslt30, xsd', str(ctx.exception))

    def test_suites_dir(self):
        with mock.patch.dict(os.environ, {SUITES_DIR_ENV: '/data/w3c'}):
            self.assertEqual(get_suites_dir(), '/data/w3c')
        with mock.patch.dict(os.environ, {SUITES_DIR_ENV: ''}):
            self.assertEqual(get_suites_dir(), 'w3c')

    def test_load_skip_file(self):
        skip = load_skip_file(os.path.join(RESOURCES_DIR, 'skip.txt'))
        self.assertEqual(skip, frozenset(('set-a-empty', 'set-b/set-b-empty')))

        with self.assertRaises(ConfigurationError):
            load_skip_file(os.path.join(RESOURCES_DIR, 'missing.txt'))

    def test_run_config(self):
        catalog = os.path.join(RESOURCES_DIR, 'qt3', 'catalog.xml')
        config = RunConfig('elementpath', get_suite_config('qt3'), catalog=catalog)
        self.assertEqual(config.catalog_path, catalog)
        self.assertIsNone(config.get_pattern())
        config.check()

        config.filter = '^fn-'
        self.assertEqual(config.get_pattern(), re.compile('^fn-'))

        config.filter = '(fn-'
        with self.assertRaises(ConfigurationError):
            config.check()

        config = RunConfig('elementpath', get_suite_config('qt3'))
        with mock.patch.dict(os.environ, {SUITES_DIR_ENV: RESOURCES_DIR}):
            self.assertEqual(config.catalog_path,
                             os.path.join(RESOURCES_DIR, 'qt3tests', 'catalog.xml'))
            with self.assertRaises(ConfigurationError) as ctx:
                config.check()
        self.assertIn('not found', str(ctx.exception))

    def test_max_failures(self):
        catalog = os.path.join(RESOURCES_DIR, 'qt3', 'catalog.xml')
        config = RunConfig('lxml', get_suite_config('qt3'), catalog=catalog, max_failures=-1)
        with self.assertRaises(ConfigurationError):
            config.check()


if __name__ == '__main__':
    unittest.main()
