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
Engine-independent representation of engine outputs.
"""
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Optional
from xml.sax.saxutils import escape

NODE_KINDS = frozenset((
    'document', 'element', 'attribute', 'text',
    'comment', 'processing-instruction', 'namespace'
))


@dataclass(frozen=True, slots=True)
class ResultItem:
    """
    An item of a result sequence.

    :param kind: a node kind (e.g. 'element'), or 'atomic', 'function', \
    'map' or 'array'.
    :param value: the string value of the item.
    :param type_name: the prefixed name of the type of an atomic item, e.g. 'xs:integer'.
    :param name: the name of an element, attribute or PI node.
    :param xml: the serialization of a node.
    :param raw: the backend object the item is built from.
    """
    kind: str
    value: str
    type_name: Optional[str] = None
    name: Optional[str] = None
    xml: Optional[str] = None
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def is_node(self) -> bool:
        return self.kind in NODE_KINDS

    def to_xml(self) -> str:
        if self.xml is not None:
            return self.xml
        elif self.kind == 'text':
            return escape(self.value)
        return self.value


@dataclass(frozen=True, slots=True)
class ResultSequence:
    """An ordered and immutable sequence of result items."""
    items: tuple[ResultItem, ...] = ()

    @classmethod
    def from_strings(cls, values: Iterable[str],
                     type_name: str = 'xs:string') -> 'ResultSequence':
        return cls(tuple(ResultItem('atomic', v, type_name) for v in values))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ResultItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> ResultItem:
        return self.items[index]

    def is_empty(self) -> bool:
        return not self.items

    def values(self) -> list[str]:
        return [item.value for item in self.items]

    def string_value(self, sep: str = ' ') -> str:
        return sep.join(item.value for item in self.items)

    def to_xml(self) -> str:
        return ''.join(item.to_xml() for item in self.items)

    def __str__(self) -> str:
        if len(self.items) == 1:
            return self.items[0].to_xml()
        return '({})'.format(', '.join(item.to_xml() for item in self.items))


@dataclass(frozen=True, slots=True)
class ValidationError:
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        elif self.column is None:
            return f'line {self.line}: {self.message}'
        return f'line {self.line}, column {self.column}: {self.message}'


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The result of the validation of an instance or of the loading of a schema."""
    valid: bool
    errors: tuple[ValidationError, ...] = ()
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.valid:
            return 'valid'
        elif not self.errors:
            return 'invalid'
        return 'invalid: {}'.format(self.errors[0])
