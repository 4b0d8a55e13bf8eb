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
An engine based on lxml, that provides XPath 1.0, XSLT 1.0 and XSD 1.0 with libxml2/libxslt.
"""
import math
import os
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

import lxml.etree as etree

from xmlconform.environments import ResolvedEnvironment
from xmlconform.exceptions import ConfigurationError, EngineError, UnsupportedOperation
from xmlconform.protocols import XMLSourceType
from xmlconform.sequences import ResultItem, ResultSequence, ValidationError, \
    ValidationResult
from .base import AbstractEngine


def format_number(value: float) -> str:
    """Formats an XPath 1.0 number with the rules of the string() function."""
    if math.isnan(value):
        return 'NaN'
    elif math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    elif value == int(value):
        return str(int(value))
    return repr(value)


def get_node_kind(node: Any) -> str:
    if isinstance(node, etree._Comment):
        return 'comment'
    elif isinstance(node, etree._ProcessingInstruction):
        return 'processing-instruction'
    elif isinstance(node, etree._ElementTree):
        return 'document'
    return 'element'


class LxmlEngine(AbstractEngine):
    """
    Engine based on lxml. Only the 1.0 versions of the languages are available,
    in the limits of libxml2 and libxslt.
    """
    name = 'lxml'
    description = 'XPath 1.0, XSLT 1.0 and XSD 1.0 with lxml (libxml2/libxslt)'
    unsupported = frozenset((
        'advanced-uca-fallback',
        'backwards_compatibility',
        'dynamic_evaluation',
        'higherOrderFunctions',
        'schema_aware',
        'schemaAware',
        'schemaImport',
        'schemaValidation',
        'streaming',
        'typedData',
        'XSD_1.1',
        'xsd-1.1',
    ))

    def __init__(self, xpath_version: str = '1.0', xslt_version: str = '1.0',
                 xsd_version: str = '1.0', **versions: Optional[str]) -> None:
        for kind, version in (('XPath', xpath_version), ('XSLT', xslt_version),
                              ('XSD', xsd_version)):
            if version != '1.0':
                raise ConfigurationError(
                    f"unsupported {kind} version {version!r} for {self.name!r} engine"
                )
        super().__init__(xpath=xpath_version, xslt=xslt_version,
                         xsd=xsd_version, **versions)

    @property
    def library_version(self) -> str:
        return '.'.join(str(x) for x in etree.LXML_VERSION)

    ###
    # Documents
    def parse(self, xml_source: XMLSourceType, base_uri: Optional[str] = None) \
            -> etree._ElementTree:
        if isinstance(xml_source, str):
            xml_source = xml_source.encode('utf-8')

        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(xml_source, parser, base_url=base_uri)
        except etree.XMLSyntaxError as err:
            raise EngineError(f"not a well-formed XML document: {err}", 'FODC0006') from None
        return root.getroottree()

    def parse_file(self, path: str) -> etree._ElementTree:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            return etree.parse(path, parser)
        except etree.XMLSyntaxError as err:
            raise EngineError(f"{path!r} is not a well-formed XML document: {err}",
                              'FODC0002') from None
        except OSError as err:
            raise EngineError(f"cannot read {path!r}: {err}", 'FODC0002') from None

    ###
    # Queries
    def get_variables(self, environment: Optional[ResolvedEnvironment]) -> dict[str, Any]:
        variables: dict[str, Any] = {}
        if environment is None:
            return variables

        for name, value in environment.variables.items():
            if isinstance(value, etree._ElementTree):
                value = value.getroot()
            variables[name] = value

        placeholder = etree.XML('<empty/>')
        for param in environment.params:
            if param.select is not None:
                variables[param.name] = placeholder.xpath(param.select)
        return variables

    def evaluate_query(self, document: Any, expression: str,
                       environment: Optional[ResolvedEnvironment] = None,
                       variables: Optional[dict[str, Any]] = None) -> ResultSequence:
        namespaces = {}
        if environment is not None:
            # lxml rejects empty prefixes
            namespaces = {k: v for k, v in environment.namespaces.items() if k}

        kwargs = self.get_variables(environment)
        if variables:
            kwargs.update(variables)

        try:
            result = document.xpath(expression, namespaces=namespaces or None, **kwargs)
        except etree.XPathError as err:
            raise EngineError(f"{err} in {expression!r}", 'XPST0003') from None
        return self.to_sequence(result)

    def evaluate_with_result(self, expression: str, result: ResultSequence,
                             environment: Optional[ResolvedEnvironment] = None) \
            -> ResultSequence:
        if len(result) == 1 and result[0].kind == 'document' \
                and isinstance(result[0].raw, etree._ElementTree):
            document = result[0].raw
        else:
            document = etree.XML('<empty/>').getroottree()

        values: list[Any] = []
        for item in result:
            if item.raw is not None:
                values.append(item.raw)
            else:
                values.append(item.value)

        if len(values) == 1 and not isinstance(values[0], (etree._Element, etree._ElementTree)):
            value: Any = values[0]
        else:
            value = [x.getroot() if isinstance(x, etree._ElementTree) else x for x in values]
        return self.evaluate_query(document, expression, environment, {'result': value})

    def to_sequence(self, result: Any) -> ResultSequence:
        if isinstance(result, list):
            return ResultSequence(tuple(self.to_result_item(x) for x in result))
        return ResultSequence((self.to_result_item(result),))

    def to_result_item(self, item: Any) -> ResultItem:
        if isinstance(item, bool):
            return ResultItem('atomic', 'true' if item else 'false', 'xs:boolean', raw=item)
        elif isinstance(item, float):
            return ResultItem('atomic', format_number(item), 'xs:double', raw=item)
        elif isinstance(item, etree._ElementUnicodeResult):
            if item.is_attribute:
                name = item.attrname
                return ResultItem('attribute', str(item), name=name,
                                  xml=f'{etree.QName(name).localname}="{item}"', raw=item)
            elif item.is_text or item.is_tail:
                return ResultItem('text', str(item), raw=item)
            return ResultItem('atomic', str(item), 'xs:string', raw=item)
        elif isinstance(item, str):
            return ResultItem('atomic', item, 'xs:string', raw=item)
        elif isinstance(item, tuple):
            # namespace nodes are returned as (prefix, uri) couples
            return ResultItem('namespace', item[1], name=item[0], raw=item)
        elif isinstance(item, etree._ElementTree):
            return ResultItem('document', ''.join(item.getroot().itertext()),
                              xml=etree.tostring(item.getroot(), encoding='unicode'),
                              raw=item)

        kind = get_node_kind(item)
        xml = etree.tostring(item, encoding='unicode', with_tail=False)
        if kind == 'element':
            return ResultItem(kind, ''.join(item.itertext()),
                              name=item.tag, xml=xml, raw=item)
        return ResultItem(kind, item.text or '', xml=xml, raw=item)

    ###
    # Transformations
    def transform(self, document: Any, stylesheet: XMLSourceType,
                  base_uri: Optional[str] = None,
                  initial_template: Optional[str] = None,
                  initial_mode: Optional[str] = None,
                  params: Optional[Mapping[str, str]] = None) -> ResultSequence:
        if initial_template is not None:
            raise UnsupportedOperation("libxslt doesn't support an initial template")
        elif initial_mode is not None:
            raise UnsupportedOperation("libxslt doesn't support an initial mode")

        if isinstance(stylesheet, str) and os.path.isfile(stylesheet):
            xslt_doc = self.parse_file(stylesheet)
        else:
            xslt_doc = self.parse(stylesheet, base_uri)

        try:
            transformer = etree.XSLT(xslt_doc)
        except etree.XSLTParseError as err:
            raise EngineError(f"stylesheet compilation failed: {err}", 'XTSE0010') from None

        # libxslt may only log the static errors of a compiled stylesheet
        compile_errors = transformer.error_log.filter_from_errors()
        if compile_errors:
            raise EngineError(f"stylesheet compilation failed: {compile_errors[0].message}",
                              'XTSE0010')

        # parameter values are XPath expressions
        kwargs = dict(params or {})
        if document is None:
            document = etree.XML('<empty/>').getroottree()

        try:
            result = transformer(document, **kwargs)
        except etree.XSLTApplyError as err:
            raise EngineError(f"transformation failed: {err}", 'XTDE0000') from None

        if result.getroot() is None:
            apply_errors = transformer.error_log.filter_from_errors()
            if apply_errors:
                raise EngineError(
                    f"stylesheet compilation failed: {apply_errors[0].message}", 'XTSE0010'
                )
            return ResultSequence((ResultItem('document', str(result), xml=str(result),
                                              raw=result),))
        xml = etree.tostring(result.getroot(), encoding='unicode')
        return ResultSequence((
            ResultItem('document', ''.join(result.getroot().itertext()), xml=xml, raw=result),
        ))

    ###
    # Schemas
    def load_schema(self, source: Union[str, Sequence[str]]) -> etree.XMLSchema:
        if not isinstance(source, str):
            if len(source) != 1:
                raise UnsupportedOperation("lxml can't load a schema from more documents")
            source = source[0]

        try:
            self.schema = etree.XMLSchema(self.parse_file(source))
        except etree.XMLSchemaParseError as err:
            raise EngineError(f"invalid schema {source!r}: {err}") from None
        return self.schema

    def validate(self, document: Any, schema: Any = None) -> ValidationResult:
        if schema is None:
            schema = self.schema
            if schema is None:
                raise EngineError("no schema loaded for validation")

        if schema.validate(document):
            return ValidationResult(True, version='1.0')

        errors = tuple(ValidationError(e.message, e.line, e.column) for e in schema.error_log)
        return ValidationResult(False, errors, version='1.0')
