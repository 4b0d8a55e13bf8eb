#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
import re
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .dependencies import Dependency

# An XPath/XQuery/XSLT error code: four uppercase letters and four digits,
# optionally prefixed (e.g. 'err:XPST0003').
ERROR_CODE_PATTERN = re.compile(r'\b(?:[\w\-]+:)?([A-Z]{4}\d{4})\b')


class XMLConformError(Exception):
    """
    Base exception class for xmlconform package.

    :param message: the message related to the error.
    :param code: an optional error code.
    """
    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super(XMLConformError, self).__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if not self.code:
            return self.message
        return '[{}] {}'.format(self.code, self.message)


class ConfigurationError(XMLConformError, ValueError):
    """Raised for bad run configurations: unknown engine or suite, missing catalog."""


class CatalogError(XMLConformError, ValueError):
    """Raised when a catalog or a test-set file is unreadable or malformed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class XMLResourceForbidden(XMLConformError, ValueError):
    """Raised when a catalog file contains entity declarations or external references."""


class EnvironmentNotFoundError(XMLConformError, KeyError):
    """Raised when a named environment reference cannot be resolved."""

    def __init__(self, name: str) -> None:
        super().__init__(f"environment not found: {name}")
        self.name = name


class SourceLoadError(XMLConformError, OSError):
    """Raised when a source document, a schema or an expected result file can't be loaded."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class DependencyError(XMLConformError):
    """Raised when a dependency of a test case is not satisfied by the active engine."""

    def __init__(self, dependency: 'Dependency') -> None:
        super().__init__("Dependency not satisfied: {} = {}".format(
            dependency.type, dependency.value
        ))
        self.dependency = dependency


class EngineError(XMLConformError):
    """
    An error returned by an engine, e.g. a static or dynamic error of
    an XPath expression or a schema that is not loadable.
    """
    @classmethod
    def from_exception(cls, err: BaseException) -> 'EngineError':
        """Builds an engine error from a backend exception, keeping its error code."""
        if isinstance(err, EngineError):
            return err

        code: Any = getattr(err, 'code', None)
        if not isinstance(code, str) or not code:
            code = get_error_code(str(err))
        elif ':' in code:
            code = code.rsplit(':', 1)[-1]

        message = getattr(err, 'message', None) or str(err) or type(err).__name__
        error = cls(str(message), code)
        error.__cause__ = err
        return error


class UnsupportedOperation(EngineError, NotImplementedError):
    """Raised by an engine that doesn't implement a capability."""


class EngineFault(XMLConformError, RuntimeError):
    """An unexpected crash of an engine, intercepted at the test case boundary."""


def get_error_code(message: str) -> Optional[str]:
    """Extracts the first W3C error code from a message, if any."""
    match = ERROR_CODE_PATTERN.search(message)
    return match.group(1) if match is not None else None
