#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
from typing import Optional

from xmlconform.etree import parse_catalog_file
from xmlconform.exceptions import CatalogError
from xmlconform.namespaces import local_name, get_namespace

from .base import QUERY_TEST, TRANSFORM_TEST, SCHEMA_TEST, INSTANCE_TEST, \
    Catalog, CatalogParser, TestCase, TestSet, TestSetRef
from .qt3 import QT3CatalogParser
from .xslt30 import XSLT30CatalogParser
from .xsd import XSDCatalogParser

__all__ = ['QUERY_TEST', 'TRANSFORM_TEST', 'SCHEMA_TEST', 'INSTANCE_TEST',
           'Catalog', 'CatalogParser', 'TestCase', 'TestSet', 'TestSetRef',
           'QT3CatalogParser', 'XSLT30CatalogParser', 'XSDCatalogParser',
           'CATALOG_PARSERS', 'get_catalog_parser', 'detect_suite']

CATALOG_PARSERS: dict[str, type[CatalogParser]] = {
    'qt3': QT3CatalogParser,
    'xslt30': XSLT30CatalogParser,
    'xsd': XSDCatalogParser,
}


def detect_suite(path: str) -> str:
    """
    Detects the suite of a catalog file from its root element.

    :raises CatalogError: if the catalog is unreadable or of an unknown dialect.
    """
    root = parse_catalog_file(path)
    tag = local_name(root.tag)

    if tag == 'testSuite':
        return 'xsd'
    elif tag == 'catalog':
        if get_namespace(root.tag) == XSLT30CatalogParser.namespace \
                or root.get('test-suite', '').upper() == 'XSLT':
            return 'xslt30'
        return 'qt3'
    raise CatalogError(f"unknown catalog dialect for {path!r} (root <{tag}>)", path)


def get_catalog_parser(path: str, suite: Optional[str] = None) -> CatalogParser:
    """
    Returns a catalog parser for a suite. If the suite is not given it's
    detected from the catalog file.
    """
    if suite is None:
        suite = detect_suite(path)

    try:
        return CATALOG_PARSERS[suite](path)
    except KeyError:
        raise CatalogError(f"no catalog parser for suite {suite!r}", path) from None
