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
Outcomes of test cases and test results.
"""
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union


@dataclass(frozen=True, slots=True)
class Pass:
    """
    A test case that passed. A note is informational, e.g. for judgements
    that relied on an approximation, and doesn't take part in comparisons.
    """
    note: Optional[str] = field(default=None, compare=False)
    label: ClassVar[str] = 'pass'

    @property
    def message(self) -> str:
        return self.note or ''

    @property
    def is_approximate(self) -> bool:
        return self.note is not None and self.note.startswith('approximate:')


@dataclass(frozen=True, slots=True)
class Fail:
    reason: str
    label: ClassVar[str] = 'fail'

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class Error:
    reason: str
    label: ClassVar[str] = 'error'

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class NotApplicable:
    reason: Optional[str] = field(default=None, compare=False)
    label: ClassVar[str] = 'n/a'

    @property
    def message(self) -> str:
        return self.reason or ''


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: Optional[str] = field(default=None, compare=False)
    label: ClassVar[str] = 'skipped'

    @property
    def message(self) -> str:
        return self.reason or ''


TestOutcome = Union[Pass, Fail, Error, NotApplicable, Skipped]

OUTCOME_CLASSES: dict[str, type[TestOutcome]] = {
    cls.label: cls for cls in (Pass, Fail, Error, NotApplicable, Skipped)
}


def outcome_from_label(label: str, message: Optional[str] = None) -> TestOutcome:
    """Rebuilds an outcome from its label and message, e.g. for loading a saved report."""
    try:
        cls = OUTCOME_CLASSES[label]
    except KeyError:
        raise ValueError(f"unknown outcome label {label!r}") from None

    if cls is Fail or cls is Error:
        return cls(message or '')  # type: ignore[call-arg]
    return cls(message or None)  # type: ignore[call-arg]


@dataclass(frozen=True, slots=True)
class TestResult:
    """
    The result of the execution of a test case. Created once per test case
    execution and never mutated.

    :param test_id: the identifier of the test case, unique within its test set.
    :param test_set: the name of the test set.
    :param test_suite: the name of the test suite, e.g. 'qt3'.
    :param description: the description of the test case.
    :param outcome: the outcome of the test case.
    :param expected: a printable form of the expected result.
    :param actual: a printable form of the actual result.
    :param duration: the elapsed wall-clock time in seconds.
    """
    __test__: ClassVar[bool] = False  # not a test class for test collectors

    test_id: str
    test_set: str
    test_suite: str
    description: str = ''
    outcome: TestOutcome = field(default_factory=Pass)
    expected: Optional[str] = None
    actual: Optional[str] = None
    duration: float = 0.0

    @property
    def message(self) -> str:
        return self.outcome.message

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))
