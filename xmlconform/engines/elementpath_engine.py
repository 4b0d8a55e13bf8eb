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
An engine for XPath 1.0/2.0/3.0/3.1 queries, based on elementpath and ElementTree.
"""
import decimal
from collections.abc import Iterable
from typing import Any, Optional
from xml.etree import ElementTree

import elementpath
from elementpath import ElementPathError, XPathContext, XPathNode, \
    XPath1Parser, XPath2Parser
from elementpath.xpath_tokens import XPathFunction, XPathMap, XPathArray
from elementpath.xpath30 import XPath30Parser
from elementpath.xpath31 import XPath31Parser

from xmlconform.environments import ResolvedEnvironment
from xmlconform.etree import etree_tostring
from xmlconform.exceptions import ConfigurationError, EngineError
from xmlconform.namespaces import local_name
from xmlconform.protocols import XMLSourceType
from xmlconform.sequences import ResultItem, ResultSequence
from .base import AbstractEngine

XPATH_PARSERS: dict[str, type[XPath1Parser]] = {
    '1.0': XPath1Parser,
    '2.0': XPath2Parser,
    '3.0': XPath30Parser,
    '3.1': XPath31Parser,
}

# Python types of atomic values that are not instances of elementpath's atomic types
ATOMIC_TYPE_NAMES = {
    bool: 'xs:boolean',
    int: 'xs:integer',
    float: 'xs:double',
    decimal.Decimal: 'xs:decimal',
    str: 'xs:string',
}


def get_atomic_type_name(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return 'xs:boolean'

    name = getattr(type(value), 'name', None)
    if isinstance(name, str) and name:
        return f'xs:{name}'

    for cls, type_name in ATOMIC_TYPE_NAMES.items():
        if isinstance(value, cls):
            return type_name
    return None


def get_node_xml(node: XPathNode) -> Optional[str]:
    """Serializes an XPath node, `None` for nodes whose XML is the string value."""
    kind = node.node_kind
    if kind == 'element':
        return etree_tostring(node.obj)
    elif kind == 'document':
        root = node.obj.getroot() if hasattr(node.obj, 'getroot') else None
        return etree_tostring(root) if root is not None else ''
    elif kind == 'attribute':
        return '{}="{}"'.format(local_name(node.name or ''), node.string_value)
    elif kind == 'comment':
        return f'<!--{node.string_value}-->'
    elif kind == 'processing-instruction':
        return f'<?{node.name} {node.string_value}?>'
    return None


class ElementPathEngine(AbstractEngine):
    """
    XPath engine based on elementpath parsers, with documents loaded
    as ElementTree trees, including comments and processing instructions.

    :param xpath_version: the XPath version, that selects the parser.
    """
    name = 'elementpath'
    description = 'XPath 1.0/2.0/3.0/3.1 with elementpath on ElementTree'
    unsupported = frozenset((
        'advanced-uca-fallback',
        'directory-as-collection-uri',
        'fn-load-xquery-module',
        'fn-transform-XSLT',
        'fn-transform-XSLT30',
        'infoset-dtd',
        'moduleImport',
        'schemaAware',
        'schemaImport',
        'schemaValidation',
        'staticTyping',
        'typedData',
    ))

    def __init__(self, xpath_version: str = '3.1', **versions: Optional[str]) -> None:
        try:
            self.parser_class = XPATH_PARSERS[xpath_version]
        except KeyError:
            raise ConfigurationError(
                f"unsupported XPath version {xpath_version!r} for {self.name!r} engine "
                f"(available: {', '.join(XPATH_PARSERS)})"
            ) from None

        super().__init__(xpath=xpath_version, **versions)
        self._string_token = XPath31Parser().parse('fn:string($result)')

    def unsupported_features(self) -> frozenset[str]:
        if self.parser_class.version < '3.0':
            return self.unsupported | {'higherOrderFunctions'}
        return self.unsupported

    def supported_features(self) -> frozenset[str]:
        if self.parser_class.version >= '3.0':
            return frozenset(('higherOrderFunctions',))
        return frozenset()

    @property
    def library_version(self) -> str:
        return elementpath.__version__

    ###
    # Documents
    def parse(self, xml_source: XMLSourceType, base_uri: Optional[str] = None) \
            -> ElementTree.ElementTree:
        builder = ElementTree.TreeBuilder(insert_comments=True, insert_pis=True)
        parser = ElementTree.XMLParser(target=builder)
        try:
            parser.feed(xml_source)
            return ElementTree.ElementTree(parser.close())
        except ElementTree.ParseError as err:
            raise EngineError(f"not a well-formed XML document: {err}", 'FODC0006') from None

    def parse_file(self, path: str) -> ElementTree.ElementTree:
        builder = ElementTree.TreeBuilder(insert_comments=True, insert_pis=True)
        try:
            return ElementTree.parse(path, ElementTree.XMLParser(target=builder))
        except ElementTree.ParseError as err:
            raise EngineError(f"{path!r} is not a well-formed XML document: {err}",
                              'FODC0002') from None
        except OSError as err:
            raise EngineError(f"cannot read {path!r}: {err}", 'FODC0002') from None

    ###
    # Queries
    def get_parser(self, environment: Optional[ResolvedEnvironment] = None,
                   schema: Any = None) -> XPath1Parser:
        kwargs: dict[str, Any] = {}
        if environment is not None:
            kwargs['namespaces'] = environment.namespaces

        if self.parser_class is not XPath1Parser:
            if environment is not None and environment.base_uri:
                kwargs['base_uri'] = environment.base_uri
            if schema is not None:
                kwargs['schema'] = schema
            if self.declared_version('xsd'):
                kwargs['xsd_version'] = self.declared_version('xsd')

        return self.parser_class(**kwargs)

    def get_context(self, document: Any, environment: Optional[ResolvedEnvironment],
                    parser: XPath1Parser, variables: Optional[dict[str, Any]] = None) \
            -> XPathContext:
        kwargs: dict[str, Any] = {'timezone': 'Z'}
        context_variables = {}

        if environment is not None:
            if environment.namespaces:
                kwargs['namespaces'] = environment.namespaces
            context_variables.update(environment.variables)

            for param in environment.params:
                if param.select is not None:
                    context_variables[param.name] = parser.parse(param.select).evaluate()

            if environment.documents:
                kwargs['documents'] = environment.documents
            if environment.collections:
                kwargs['collections'] = environment.collections
            if environment.default_collection is not None:
                kwargs['default_collection'] = environment.default_collection

        if variables:
            context_variables.update(variables)
        if context_variables:
            kwargs['variables'] = context_variables

        return XPathContext(root=document, **kwargs)

    def evaluate_query(self, document: Any, expression: str,
                       environment: Optional[ResolvedEnvironment] = None) -> ResultSequence:
        try:
            parser = self.get_parser(environment, schema=self.get_schema_proxy(environment))
            root_token = parser.parse(expression)
            context = self.get_context(document, environment, parser)
            return self.to_sequence(root_token.select(context))
        except ElementPathError as err:
            raise EngineError.from_exception(err) from err

    def evaluate_with_result(self, expression: str, result: ResultSequence,
                             environment: Optional[ResolvedEnvironment] = None) \
            -> ResultSequence:
        values = [item.raw if item.raw is not None else item.value for item in result]

        document: Any = ElementTree.XML('<empty/>')
        if len(values) == 1 and isinstance(values[0], XPathNode) \
                and values[0].node_kind == 'document':
            document = values[0].obj  # transformation results are context items

        try:
            parser = self.get_parser(environment)
            root_token = parser.parse(expression)
            context = self.get_context(document, environment, parser, {'result': values})
            return self.to_sequence(root_token.select(context))
        except ElementPathError as err:
            raise EngineError.from_exception(err) from err

    def get_schema_proxy(self, environment: Optional[ResolvedEnvironment]) -> Any:
        return None

    ###
    # Conversion of results
    def to_sequence(self, items: Iterable[Any]) -> ResultSequence:
        return ResultSequence(tuple(self.to_result_item(x) for x in items))

    def to_result_item(self, item: Any) -> ResultItem:
        if isinstance(item, XPathNode):
            return ResultItem(
                kind=item.node_kind,
                value=item.string_value,
                name=item.name if isinstance(item.name, str) else None,
                xml=get_node_xml(item),
                raw=item,
            )
        elif isinstance(item, XPathMap):
            return ResultItem('map', str(item), raw=item)
        elif isinstance(item, XPathArray):
            return ResultItem('array', str(item), raw=item)
        elif isinstance(item, XPathFunction):
            return ResultItem('function', str(item), raw=item)
        elif ElementTree.iselement(item):
            # XPath 1.0 results on ElementTree elements
            return ResultItem('element', ''.join(item.itertext()),
                              name=item.tag, xml=etree_tostring(item), raw=item)

        return ResultItem('atomic', self.get_string_value(item),
                          type_name=get_atomic_type_name(item), raw=item)

    def get_string_value(self, value: Any) -> str:
        if isinstance(value, str):
            return value

        context = XPathContext(ElementTree.XML('<empty/>'), variables={'result': value})
        try:
            return str(self._string_token.evaluate(context))
        except ElementPathError:
            return str(value)
