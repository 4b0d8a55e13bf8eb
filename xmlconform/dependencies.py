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
Checks of test case dependencies against the capabilities of an engine.
"""
import re
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from xmlconform.helpers import split_tokens
from xmlconform.protocols import CapabilitiesProtocol

logger = logging.getLogger('xmlconform')

# Spec tokens, e.g. 'XP20', 'XP30+', 'XQ31', 'XT30+', 'XSLT20+', 'XSD11'.
SPEC_TOKEN_PATTERN = re.compile(r'^(XP|XQ|XT|XSLT|XSD)(\d)(\d)(\+)?$')

SPEC_FAMILIES = {
    'XP': 'xpath',
    'XQ': 'xquery',
    'XT': 'xslt',
    'XSLT': 'xslt',
    'XSD': 'xsd',
}


@dataclass(frozen=True, slots=True)
class Dependency:
    """
    A precondition of a test set or a test case.

    :param type: the dependency type, e.g. 'spec' or 'feature'.
    :param value: the dependency value, e.g. 'XP30+ XQ30+'.
    :param satisfied: the catalog-declared satisfaction, `False` means that \
    the test applies only when the dependency is not met.
    """
    type: str
    value: str
    satisfied: bool = True

    def __str__(self) -> str:
        if self.satisfied:
            return f'{self.type}={self.value}'
        return f'{self.type}={self.value} (not satisfied)'


def parse_version(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(x) for x in version.split('.'))
    except ValueError:
        raise ValueError(f"invalid version string {version!r}") from None


def check_spec_token(token: str, engine: CapabilitiesProtocol) -> bool:
    """
    Checks a spec token against the versions declared by the engine. A token
    with a trailing '+' is satisfied by the same version or any later version.
    """
    match = SPEC_TOKEN_PATTERN.match(token)
    if match is None:
        logger.debug("unknown spec token %r", token)
        return False

    family, major, minor, plus = match.groups()
    declared = engine.declared_version(SPEC_FAMILIES[family])
    if not declared:
        return False

    try:
        active_version = parse_version(declared)[:2]
    except ValueError:
        logger.warning("engine %r declares an invalid %s version %r",
                       engine.name, SPEC_FAMILIES[family], declared)
        return False

    required_version = (int(major), int(minor))
    if plus:
        return active_version >= required_version
    return active_version == required_version


def check_dependency(dependency: Dependency, engine: CapabilitiesProtocol) -> bool:
    """
    Decides if a dependency is satisfiable by the active engine.

    * 'spec': satisfied if the engine supports at least one of the version tokens;
    * 'feature': satisfied unless the feature is declared unsupported by the engine;
    * other types: decided by the engine if it knows the type, otherwise the \
    catalog-declared `satisfied` flag is used.
    """
    if dependency.type == 'spec':
        return any(check_spec_token(token, engine) for token in split_tokens(dependency.value))

    elif dependency.type == 'feature':
        unsupported = engine.unsupported_features()
        supported = not any(x in unsupported for x in split_tokens(dependency.value))
        return supported is dependency.satisfied

    result = engine.supports_dependency(dependency.type, dependency.value)
    if result is None:
        return dependency.satisfied
    return result is dependency.satisfied


def find_unsatisfied(dependencies: Iterable[Dependency],
                     engine: CapabilitiesProtocol) -> Optional[Dependency]:
    """Returns the first dependency not satisfied by the engine, `None` if all are satisfied."""
    for dependency in dependencies:
        if not check_dependency(dependency, engine):
            return dependency
    return None
