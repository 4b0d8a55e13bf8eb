#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
"""Type annotation aliases for xmlconform."""
from collections.abc import Callable, MutableMapping
from typing import Any, TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .exceptions import EngineError  # noqa: F401
    from .outcomes import TestOutcome, TestResult  # noqa: F401
    from .sequences import ResultSequence, ValidationResult  # noqa: F401

###
# Namespace maps
NamespacesType = MutableMapping[str, str]

###
# Execution outcomes: an engine returns a result or an error, never both.
ResultType = Union['ResultSequence', 'ValidationResult']
ExecutionOutcomeType = Union['ResultSequence', 'ValidationResult', 'EngineError']

# A callback that evaluates an expression with $result bound to a result sequence.
QueryCallbackType = Callable[[str, 'ResultSequence'], 'ResultSequence']

# Called by the runner after each test case execution.
ResultCallbackType = Callable[['TestResult'], Any]
