#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#

from xmlconform.aliases import NamespacesType

# Namespaces
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XSD_NAMESPACE = "http://www.w3.org/2001/XMLSchema"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
XSLT_NAMESPACE = "http://www.w3.org/1999/XSL/Transform"
XPATH_FUNCTIONS_NAMESPACE = "http://www.w3.org/2005/xpath-functions"

# Test catalogs namespaces
QT3_NAMESPACE = "http://www.w3.org/2010/09/qt-fots-catalog"
XSLT_TEST_NAMESPACE = "http://www.w3.org/2012/10/xslt-test-catalog"
XSTS_NAMESPACE = "http://www.w3.org/XML/2004/xml-schema-test-suite/"

# Default static namespaces available to query expressions
DEFAULT_NAMESPACES: NamespacesType = {
    'xml': XML_NAMESPACE,
    'xs': XSD_NAMESPACE,
    'xsi': XSI_NAMESPACE,
    'fn': XPATH_FUNCTIONS_NAMESPACE,
}


def get_namespace(name: str) -> str:
    if not name or name[0] != '{':
        return ''
    return name[1:].split('}')[0]


def local_name(name: str) -> str:
    """
    Returns the local part of an expanded or a prefixed QName.
    Callables (tags of comments and processing instructions) map to ''.
    """
    if not isinstance(name, str):
        return ''
    elif name[:1] == '{':
        return name.rsplit('}', 1)[-1]
    return name.rsplit(':', 1)[-1]


def get_expanded_name(name: str, namespaces: NamespacesType) -> str:
    """
    Get the expanded form of a prefixed QName, using a namespace map.
    Unprefixed names are mapped to the default namespace, if any.

    :param name: a prefixed QName or a local name or an extended QName.
    :param namespaces: a dictionary with a map from prefixes to namespace URIs.
    """
    if not name or name.startswith('{'):
        return name
    elif name.startswith('Q{'):
        return name[1:]

    prefix, _, local_part = name.rpartition(':')
    if not prefix:
        uri = namespaces.get('', '')
        return f'{{{uri}}}{name}' if uri else name
    elif prefix == 'xml':
        return f'{{{XML_NAMESPACE}}}{local_part}'

    try:
        return f'{{{namespaces[prefix]}}}{local_part}'
    except KeyError:
        raise ValueError(f"unknown prefix {prefix!r} for name {name!r}") from None
