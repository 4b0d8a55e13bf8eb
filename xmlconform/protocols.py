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
Define type hints protocols for engines and their capabilities.
"""
from collections.abc import Mapping, Sequence, Set
from typing import Any, Optional, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .environments import ResolvedEnvironment  # noqa: F401
    from .sequences import ResultSequence, ValidationResult  # noqa: F401

XMLSourceType = Union[str, bytes]


class CapabilitiesProtocol(Protocol):
    """The capability queries used for checking the dependencies of test cases."""
    name: str

    def declared_version(self, kind: str) -> Optional[str]: ...

    def supported_features(self) -> Set[str]: ...

    def unsupported_features(self) -> Set[str]: ...

    def supports_dependency(self, dep_type: str, value: str) -> Optional[bool]: ...


class EngineProtocol(CapabilitiesProtocol, Protocol):
    """The full capability interface of an engine."""

    def parse(self, xml_source: XMLSourceType, base_uri: Optional[str] = None) -> Any: ...

    def parse_file(self, path: str) -> Any: ...

    def evaluate_query(self, document: Any, expression: str,
                       environment: Optional['ResolvedEnvironment'] = None) \
        -> 'ResultSequence': ...

    def evaluate_with_result(self, expression: str, result: 'ResultSequence',
                             environment: Optional['ResolvedEnvironment'] = None) \
        -> 'ResultSequence': ...

    def transform(self, document: Any, stylesheet: XMLSourceType,
                  base_uri: Optional[str] = None,
                  initial_template: Optional[str] = None,
                  initial_mode: Optional[str] = None,
                  params: Optional[Mapping[str, str]] = None) -> 'ResultSequence': ...

    def load_schema(self, source: Union[str, Sequence[str]]) -> Any: ...

    def validate(self, document: Any, schema: Any = None) -> 'ValidationResult': ...
