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
Engines are the XML processors under test. An engine is selected by name
from a registry, that can be extended with `register_engine()`.
"""
from typing import Any

from xmlconform.exceptions import ConfigurationError
from .base import AbstractEngine, VERSION_KINDS
from .elementpath_engine import ElementPathEngine
from .lxml_engine import LxmlEngine
from .xmlschema_engine import XMLSchemaEngine

__all__ = ['AbstractEngine', 'ElementPathEngine', 'LxmlEngine', 'XMLSchemaEngine',
           'ENGINES', 'VERSION_KINDS', 'register_engine', 'get_engine']

ENGINES: dict[str, type[AbstractEngine]] = {
    ElementPathEngine.name: ElementPathEngine,
    LxmlEngine.name: LxmlEngine,
    XMLSchemaEngine.name: XMLSchemaEngine,
}


def register_engine(engine_class: type[AbstractEngine]) -> type[AbstractEngine]:
    """Registers an engine class by its name. Usable as a class decorator."""
    if not engine_class.name:
        raise ValueError(f"{engine_class!r} has no name")
    ENGINES[engine_class.name] = engine_class
    return engine_class


def get_engine(name: str, **options: Any) -> AbstractEngine:
    """
    Builds an engine instance. Options with a `None` value are ignored.

    :param name: the name of a registered engine.
    :param options: version options, e.g. `xpath_version='2.0'`.
    :raises ConfigurationError: if the engine is unknown or an option is invalid.
    """
    try:
        engine_class = ENGINES[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown engine {name!r} (available engines: {', '.join(sorted(ENGINES))})"
        ) from None

    kwargs = {k: v for k, v in options.items() if v is not None}
    try:
        return engine_class(**kwargs)
    except TypeError as err:
        raise ConfigurationError(f"invalid options for engine {name!r}: {err}") from None
