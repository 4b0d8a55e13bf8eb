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
Safe loading of catalog files and namespace-agnostic helpers for ElementTree.
"""
import io
import importlib
from collections.abc import Iterator
from itertools import zip_longest
from pyexpat import XMLParserType
from typing import Any, Optional
from xml.dom import pulldom
from xml.etree import ElementTree
from xml.sax import SAXParseException
from xml.sax import expatreader  # type: ignore[attr-defined, unused-ignore]

from xmlconform.exceptions import XMLResourceForbidden, CatalogError
from xmlconform.helpers import is_equivalent
from xmlconform.namespaces import XML_NAMESPACE, local_name

XML_EXPANDED_PREFIX = f'{{{XML_NAMESPACE}}}'

ElementType = ElementTree.Element


class SafeExpatParser(expatreader.ExpatParser):  # type: ignore[misc, unused-ignore]
    _parser: XMLParserType

    def forbid_entity_declaration(self, name, is_parameter_entity,  # type: ignore
                                  value, base, sysid, pubid, notation_name):
        raise XMLResourceForbidden(f"Entities are forbidden (entity_name={name!r})")

    def forbid_unparsed_entity_declaration(self, name, base,  # type: ignore
                                           sysid, pubid, notation_name):
        raise XMLResourceForbidden(f"Unparsed entities are forbidden (entity_name={name!r})")

    def forbid_external_entity_reference(self, context, base, sysid, pubid):  # type: ignore
        raise XMLResourceForbidden(
            f"External references are forbidden (system_id={sysid!r}, public_id={pubid!r})"
        )  # pragma: no cover

    def reset(self) -> None:
        super().reset()
        self._parser.EntityDeclHandler = self.forbid_entity_declaration
        self._parser.UnparsedEntityDeclHandler = self.forbid_unparsed_entity_declaration
        self._parser.ExternalEntityRefHandler = self.forbid_external_entity_reference


def defuse_xml(xml_source: bytes) -> bytes:
    parser = SafeExpatParser()
    try:
        for event, node in pulldom.parse(io.BytesIO(xml_source), parser):
            if event == pulldom.START_ELEMENT:
                break
    except SAXParseException:
        pass  # the purpose is to defuse not to check xml source syntax

    return xml_source


def parse_catalog_file(path: str) -> ElementType:
    """
    Parses a catalog or a test-set file, forbidding entities and external references.

    :raises CatalogError: if the file is unreadable or malformed.
    """
    try:
        with open(path, 'rb') as fp:
            xml_source = fp.read()
    except OSError as err:
        raise CatalogError(f"cannot read {path!r}: {err.strerror or err}", path) from None

    try:
        return ElementTree.fromstring(defuse_xml(xml_source))
    except XMLResourceForbidden as err:
        raise CatalogError(f"{path!r} is not a safe XML file: {err}", path) from None
    except ElementTree.ParseError as err:
        raise CatalogError(f"{path!r} is not well-formed XML: {err}", path) from None


###
# Namespace-agnostic access to catalog elements

def iter_children(elem: ElementType, name: Optional[str] = None) -> Iterator[ElementType]:
    """Iterates the child elements, optionally filtering them by local name."""
    for child in elem:
        if callable(child.tag):
            continue
        elif name is None or local_name(child.tag) == name:
            yield child


def iter_descendants(elem: ElementType, name: str) -> Iterator[ElementType]:
    """Iterates the descendant elements with a given local name, in document order."""
    for e in elem.iter():
        if e is not elem and not callable(e.tag) and local_name(e.tag) == name:
            yield e


def find_child(elem: ElementType, name: str) -> Optional[ElementType]:
    return next(iter_children(elem, name), None)


def child_text(elem: ElementType, name: str, default: Optional[str] = None) -> Optional[str]:
    child = find_child(elem, name)
    if child is None or child.text is None:
        return default
    return child.text


def get_attribute(elem: ElementType, name: str, default: Optional[str] = None) \
        -> Optional[str]:
    """
    Gets an attribute value by local name, so 'href' matches also 'xlink:href'.
    An unqualified attribute has the precedence.
    """
    try:
        return elem.attrib[name]
    except KeyError:
        for key, value in elem.attrib.items():
            if local_name(key) == name:
                return value
        return default


def get_boolean_attribute(elem: ElementType, name: str, default: bool = False) -> bool:
    value = get_attribute(elem, name)
    if value is None:
        return default
    return value.strip() in ('true', '1')


###
# Serialization and comparison

def is_lxml_etree_element(obj: Any) -> bool:
    return hasattr(obj, 'tag') and \
        hasattr(obj, 'getparent') and \
        hasattr(obj, 'nsmap') and \
        obj.__class__.__module__ in ('lxml.etree', 'lxml.html')


def etree_tostring(elem: Any, with_tail: bool = False) -> str:
    """Serializes an ElementTree or an lxml element, by default without its tail."""
    if is_lxml_etree_element(elem):
        lxml_etree: Any = importlib.import_module('lxml.etree')
        return str(lxml_etree.tostring(elem, encoding='unicode', with_tail=with_tail))

    if with_tail:
        return ElementTree.tostring(elem, encoding='unicode')

    tail, elem.tail = elem.tail, None
    try:
        return ElementTree.tostring(elem, encoding='unicode')
    finally:
        elem.tail = tail


def etree_is_equal(root1: Any, root2: Any, strict: bool = True) -> bool:
    """
    Compares two element trees. In non-strict mode the surrounding white spaces
    of texts and tails are ignored, as well as the xml:* attributes and the
    lexical differences of equivalent values (e.g. '1.0' and '1').
    """
    for e1, e2 in zip_longest(root1.iter(), root2.iter()):
        if e1 is None or e2 is None:
            return False

        if e1.tail != e2.tail and e1 is not root1:
            if strict:
                return False
            if (e1.tail or '').strip() != (e2.tail or '').strip():
                return False

        if callable(e1.tag) ^ callable(e2.tag):
            return False
        elif not callable(e1.tag):
            if e1.tag != e2.tag:
                return False
            if e1.attrib != e2.attrib:
                if strict:
                    return False

                attrib1 = {k: v for k, v in e1.attrib.items()
                           if not k.startswith(XML_EXPANDED_PREFIX)}
                attrib2 = {k: v for k, v in e2.attrib.items()
                           if not k.startswith(XML_EXPANDED_PREFIX)}
                if attrib1.keys() != attrib2.keys():
                    return False
                if any(not is_equivalent(v, attrib2[k]) for k, v in attrib1.items()):
                    return False

        if e1.text != e2.text:
            if strict:
                return False

            text1, text2 = (e1.text or '').strip(), (e2.text or '').strip()
            if text1 != text2 and not is_equivalent(text1, text2):
                return False
    else:
        return True


def parse_fragment(text: str) -> ElementType:
    """
    Parses an XML fragment, that can have more root elements and text,
    returning a wrapper element that contains it.

    :raises ValueError: if the fragment is not well-formed.
    """
    try:
        return ElementTree.fromstring(f'<fragment>{text}</fragment>')
    except ElementTree.ParseError as err:
        raise ValueError(f"not a well-formed XML fragment: {err}") from None


def fragments_are_equal(xml1: str, xml2: str) -> bool:
    """Compares two serialized XML fragments in non-strict mode."""
    try:
        root1, root2 = parse_fragment(xml1.strip()), parse_fragment(xml2.strip())
    except ValueError:
        return False
    return etree_is_equal(root1, root2, strict=False)
