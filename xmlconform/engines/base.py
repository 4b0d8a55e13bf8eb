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
Base class for engines, the pluggable XML processors driven by test runners.
"""
import logging
from collections.abc import Mapping, Sequence, Set
from typing import Any, ClassVar, Optional, Union

from xmlconform.environments import ResolvedEnvironment
from xmlconform.exceptions import UnsupportedOperation, SourceLoadError
from xmlconform.helpers import split_tokens
from xmlconform.protocols import XMLSourceType
from xmlconform.sequences import ResultSequence, ValidationResult

logger = logging.getLogger('xmlconform')

VERSION_KINDS = ('xpath', 'xquery', 'xslt', 'xsd')


class AbstractEngine:
    """
    Base class for engines. Every capability raises `UnsupportedOperation`
    unless a backend overrides it.

    An engine instance holds mutable state (e.g. the last loaded schema),
    so it must process one test case at a time.
    """
    name: ClassVar[str] = ''
    description: ClassVar[str] = ''

    unsupported: ClassVar[frozenset[str]] = frozenset()
    """Features declared not supported by the engine."""

    versions: dict[str, str]
    schema: Any = None

    def __init__(self, **versions: Optional[str]) -> None:
        self.versions = {k: v for k, v in versions.items() if k in VERSION_KINDS and v}

    def __repr__(self) -> str:
        return '%s(%s)' % (self.__class__.__name__, ', '.join(
            f'{k}={v!r}' for k, v in self.versions.items()
        ))

    def __str__(self) -> str:
        versions = ', '.join(f'{k.upper()} {v}' for k, v in self.versions.items())
        return f'{self.name} ({versions})' if versions else self.name

    @property
    def library_version(self) -> str:
        """The version of the backend library, empty if there is none."""
        return ''

    ###
    # Capability queries
    def declared_version(self, kind: str) -> Optional[str]:
        """Returns the active version of a language (e.g. 'xpath'), `None` if unsupported."""
        return self.versions.get(kind)

    def supported_features(self) -> Set[str]:
        return frozenset()

    def unsupported_features(self) -> Set[str]:
        return self.unsupported

    def supports_feature(self, feature: str) -> bool:
        return feature not in self.unsupported_features()

    def supports_dependency(self, dep_type: str, value: str) -> Optional[bool]:
        """
        Decides about dependency types other than 'spec' and 'feature'.
        Returns `None` for types the engine doesn't know about.
        """
        if dep_type == 'xml-version':
            # XML 1.1 documents are not supported by Python's libraries
            return any(x.startswith('1.0') for x in split_tokens(value))
        elif dep_type == 'xsd-version':
            xsd_version = self.declared_version('xsd')
            versions = [x for x in split_tokens(value) if x[:1].isdigit()]
            if xsd_version is None or not versions:
                return None
            return xsd_version in versions
        return None

    ###
    # Operations
    def parse(self, xml_source: XMLSourceType, base_uri: Optional[str] = None) -> Any:
        raise UnsupportedOperation(f"{self.name!r} engine doesn't parse XML documents")

    def parse_file(self, path: str) -> Any:
        try:
            with open(path, 'rb') as fp:
                xml_source = fp.read()
        except OSError as err:
            raise SourceLoadError(f"cannot read {path!r}: {err}", path) from None
        return self.parse(xml_source, base_uri=path)

    def evaluate_query(self, document: Any, expression: str,
                       environment: Optional[ResolvedEnvironment] = None) -> ResultSequence:
        raise UnsupportedOperation(f"{self.name!r} engine doesn't evaluate queries")

    def evaluate_with_result(self, expression: str, result: ResultSequence,
                             environment: Optional[ResolvedEnvironment] = None) \
            -> ResultSequence:
        """Evaluates an expression with `$result` bound to a result sequence."""
        raise UnsupportedOperation(
            f"{self.name!r} engine doesn't evaluate expressions on results"
        )

    def transform(self, document: Any, stylesheet: XMLSourceType,
                  base_uri: Optional[str] = None,
                  initial_template: Optional[str] = None,
                  initial_mode: Optional[str] = None,
                  params: Optional[Mapping[str, str]] = None) -> ResultSequence:
        raise UnsupportedOperation(f"{self.name!r} engine doesn't transform documents")

    def load_schema(self, source: Union[str, Sequence[str]]) -> Any:
        raise UnsupportedOperation(f"{self.name!r} engine doesn't load schemas")

    def validate(self, document: Any, schema: Any = None) -> ValidationResult:
        raise UnsupportedOperation(f"{self.name!r} engine doesn't validate documents")
