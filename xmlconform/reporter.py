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
Compliance reports: aggregation of test results and rendering of reports
as plain summaries, JSON, CSV and Markdown. Report generation doesn't
involve engines and preserves the order of the results.
"""
import csv
import io
import json
import datetime
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from xmlconform.exceptions import ConfigurationError
from xmlconform.outcomes import Pass, Fail, Error, NotApplicable, Skipped, \
    TestResult, outcome_from_label

REPORT_FORMATS = ('summary', 'json', 'csv', 'markdown')

CSV_HEADER = ('test_suite', 'test_set', 'test_id', 'description',
              'outcome', 'message', 'duration_ms')

MAX_MARKDOWN_ROWS = 100
MAX_MARKDOWN_MESSAGE = 50
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S UTC'


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def markdown_cell(value: str) -> str:
    return value.replace('\n', ' ').replace('|', '\\|')


@dataclass
class ComplianceSummary:
    """The counts of outcomes of a run."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    not_applicable: int = 0
    skipped: int = 0

    @classmethod
    def from_results(cls, results: Iterable[TestResult]) -> 'ComplianceSummary':
        summary = cls()
        for result in results:
            summary.add(result)
        return summary

    def add(self, result: TestResult) -> None:
        self.total += 1
        outcome = result.outcome
        if isinstance(outcome, Pass):
            self.passed += 1
        elif isinstance(outcome, Fail):
            self.failed += 1
        elif isinstance(outcome, Error):
            self.errors += 1
        elif isinstance(outcome, NotApplicable):
            self.not_applicable += 1
        elif isinstance(outcome, Skipped):
            self.skipped += 1

    @property
    def applicable(self) -> int:
        """The number of test cases that count for the pass rate."""
        return self.total - self.not_applicable - self.skipped

    @property
    def pass_rate(self) -> float:
        applicable = self.applicable
        if applicable > 0:
            return self.passed / applicable * 100
        return 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            'total': self.total,
            'passed': self.passed,
            'failed': self.failed,
            'errors': self.errors,
            'not_applicable': self.not_applicable,
            'skipped': self.skipped,
            'pass_rate': self.pass_rate,
        }


class ComplianceAggregator:
    """
    Accumulates the test results of a run, in execution order. Usable as the
    result callback of a test runner.
    """
    def __init__(self, engine: str, suite: str) -> None:
        self.engine = engine
        self.suite = suite
        self.results: list[TestResult] = []
        self.summary = ComplianceSummary()

    def __call__(self, result: TestResult) -> None:
        self.add(result)

    def __len__(self) -> int:
        return len(self.results)

    def add(self, result: TestResult) -> None:
        self.results.append(result)
        self.summary.add(result)

    def extend(self, results: Iterable[TestResult]) -> None:
        for result in results:
            self.add(result)

    def get_report(self, timestamp: Optional[datetime.datetime] = None) -> 'ComplianceReport':
        return ComplianceReport(
            engine=self.engine,
            suite=self.suite,
            results=list(self.results),
            timestamp=timestamp or utc_now(),
        )


@dataclass
class ComplianceReport:
    """
    A compliance report of an engine on a test suite.

    :param engine: a description of the engine, e.g. 'elementpath (XPATH 3.1)'.
    :param suite: the name of the test suite.
    :param results: the test results in execution order.
    :param timestamp: the creation time of the report.
    """
    engine: str
    suite: str
    results: list[TestResult] = field(default_factory=list)
    timestamp: datetime.datetime = field(default_factory=utc_now)

    @property
    def summary(self) -> ComplianceSummary:
        return ComplianceSummary.from_results(self.results)

    def get_failures(self) -> list[TestResult]:
        return [r for r in self.results if isinstance(r.outcome, (Fail, Error))]

    def render(self, output_format: str, **kwargs: Any) -> str:
        if output_format == 'summary':
            return self.to_summary(**kwargs)
        elif output_format == 'json':
            return self.to_json()
        elif output_format == 'csv':
            return self.to_csv()
        elif output_format == 'markdown':
            return self.to_markdown()
        raise ConfigurationError(
            f"unknown report format {output_format!r} "
            f"(available formats: {', '.join(REPORT_FORMATS)})"
        )

    def to_summary(self, max_failures: int = 10) -> str:
        summary = self.summary
        lines = [
            f"*** Compliance of {self.engine} on test suite {self.suite!r} ***",
            "",
            f"{summary.total} test cases run",
            f"  {summary.passed} passed",
            f"  {summary.failed} failed",
            f"  {summary.errors} errors",
            f"  {summary.not_applicable} not applicable",
            f"  {summary.skipped} skipped",
            "",
            f"Pass rate: {summary.pass_rate:.2f}% of {summary.applicable} applicable",
        ]

        failures = self.get_failures()
        if failures and max_failures > 0:
            lines.append("")
            lines.append("Failures:")
            for result in failures[:max_failures]:
                lines.append(f"  {result.test_set}/{result.test_id} "
                             f"[{result.outcome.label}]: {result.message}")
            if len(failures) > max_failures:
                lines.append(f"  ... and {len(failures) - max_failures} more failures")

        return '\n'.join(lines) + '\n'

    def to_json(self) -> str:
        report = {
            'engine': self.engine,
            'timestamp': self.timestamp.isoformat(),
            'suite': self.suite,
            'summary': self.summary.as_dict(),
            'results': [
                {
                    'test_id': r.test_id,
                    'test_set': r.test_set,
                    'test_suite': r.test_suite,
                    'description': r.description or None,
                    'outcome': r.outcome.label,
                    'message': r.message or None,
                    'expected': r.expected,
                    'actual': r.actual,
                    'duration_ms': r.duration_ms,
                }
                for r in self.results
            ],
        }
        return json.dumps(report, indent=2)

    @classmethod
    def from_json(cls, text: str) -> 'ComplianceReport':
        """
        Loads a report saved in JSON format.

        :raises ValueError: if the text is not a JSON compliance report.
        """
        data = json.loads(text)
        if not isinstance(data, dict) or 'results' not in data:
            raise ValueError("not a JSON compliance report")

        try:
            timestamp = datetime.datetime.fromisoformat(data['timestamp'])
        except (KeyError, TypeError, ValueError):
            timestamp = utc_now()

        results = []
        for item in data['results']:
            try:
                results.append(TestResult(
                    test_id=item['test_id'],
                    test_set=item['test_set'],
                    test_suite=item.get('test_suite') or data.get('suite', ''),
                    description=item.get('description') or '',
                    outcome=outcome_from_label(item['outcome'], item.get('message')),
                    expected=item.get('expected'),
                    actual=item.get('actual'),
                    duration=item.get('duration_ms', 0) / 1000,
                ))
            except (KeyError, TypeError) as err:
                raise ValueError(f"invalid test result in JSON report: {err!r}") from None

        return cls(
            engine=data.get('engine', ''),
            suite=data.get('suite', ''),
            results=results,
            timestamp=timestamp,
        )

    def to_csv(self) -> str:
        with io.StringIO(newline='') as fp:
            writer = csv.writer(fp, quoting=csv.QUOTE_ALL, lineterminator='\n')
            writer.writerow(CSV_HEADER)
            for r in self.results:
                writer.writerow((
                    r.test_suite, r.test_set, r.test_id, r.description,
                    r.outcome.label, r.message, r.duration_ms
                ))
            return fp.getvalue()

    def to_markdown(self) -> str:
        summary = self.summary
        lines = [
            f"# {self.engine} Compliance Report",
            "",
            f"**Suite:** {self.suite}",
            f"**Date:** {self.timestamp.strftime(TIMESTAMP_FORMAT)}",
            "",
            "## Summary",
            "",
            "| Metric | Count |",
            "|--------|-------|",
            f"| Total | {summary.total} |",
            f"| Passed | {summary.passed} |",
            f"| Failed | {summary.failed} |",
            f"| Errors | {summary.errors} |",
            f"| Not Applicable | {summary.not_applicable} |",
            f"| Skipped | {summary.skipped} |",
            f"| **Pass Rate** | **{summary.pass_rate:.2f}%** |",
            "",
        ]

        if self.results:
            lines.extend(("## Failed Tests", ""))
            failures = self.get_failures()
            if not failures:
                lines.extend(("No failed tests!", ""))
            else:
                lines.append("| Test Set | Test ID | Outcome | Message |")
                lines.append("|----------|---------|---------|---------|")
                for r in failures[:MAX_MARKDOWN_ROWS]:
                    message = (r.message or '-')[:MAX_MARKDOWN_MESSAGE]
                    lines.append(f"| {markdown_cell(r.test_set)} | {markdown_cell(r.test_id)} "
                                 f"| {r.outcome.label} | {markdown_cell(message)} |")
                if len(failures) > MAX_MARKDOWN_ROWS:
                    lines.append("")
                    lines.append(f"... and {len(failures) - MAX_MARKDOWN_ROWS} "
                                 f"more failed tests")

        return '\n'.join(lines) + '\n'


###
# Comparison of reports of different engines

@dataclass(frozen=True, slots=True)
class EngineSummary:
    name: str
    passed: int
    total: int
    pass_rate: float


@dataclass
class ComparisonReport:
    """A comparison of the compliance reports of more engines on a test suite."""
    suite: str
    engines: list[EngineSummary] = field(default_factory=list)
    timestamp: datetime.datetime = field(default_factory=utc_now)

    def render(self, output_format: str, **kwargs: Any) -> str:
        if output_format == 'summary':
            return self.to_summary()
        elif output_format == 'json':
            return self.to_json()
        elif output_format == 'csv':
            return self.to_csv()
        elif output_format == 'markdown':
            return self.to_markdown()
        raise ConfigurationError(
            f"unknown report format {output_format!r} "
            f"(available formats: {', '.join(REPORT_FORMATS)})"
        )

    def to_summary(self) -> str:
        lines = [f"*** Comparison of engines on test suite {self.suite!r} ***", ""]
        width = max((len(e.name) for e in self.engines), default=0)
        for e in self.engines:
            lines.append(f"  {e.name:<{width}}  {e.passed:>6}/{e.total:<6}  "
                         f"{e.pass_rate:6.2f}%")
        return '\n'.join(lines) + '\n'

    def to_json(self) -> str:
        return json.dumps({
            'timestamp': self.timestamp.isoformat(),
            'suite': self.suite,
            'engines': [
                {'name': e.name, 'passed': e.passed, 'total': e.total,
                 'pass_rate': e.pass_rate}
                for e in self.engines
            ],
        }, indent=2)

    def to_csv(self) -> str:
        with io.StringIO(newline='') as fp:
            writer = csv.writer(fp, quoting=csv.QUOTE_ALL, lineterminator='\n')
            writer.writerow(('engine', 'passed', 'total', 'pass_rate'))
            for e in self.engines:
                writer.writerow((e.name, e.passed, e.total, f'{e.pass_rate:.2f}'))
            return fp.getvalue()

    def to_markdown(self) -> str:
        lines = [
            "# Engine Comparison Report",
            "",
            f"**Suite:** {self.suite}",
            f"**Date:** {self.timestamp.strftime(TIMESTAMP_FORMAT)}",
            "",
            "| Engine | Passed | Total | Pass Rate |",
            "|--------|--------|-------|-----------|",
        ]
        for e in self.engines:
            lines.append(f"| {markdown_cell(e.name)} | {e.passed} | {e.total} "
                         f"| {e.pass_rate:.2f}% |")
        return '\n'.join(lines) + '\n'


def compare_reports(reports: Iterable[ComplianceReport]) -> ComparisonReport:
    """Builds a comparison of compliance reports, in the order of the reports."""
    reports = list(reports)
    engines = []
    for report in reports:
        summary = report.summary
        engines.append(EngineSummary(
            name=report.engine,
            passed=summary.passed,
            total=summary.total,
            pass_rate=summary.pass_rate,
        ))
    return ComparisonReport(suite=reports[0].suite if reports else '', engines=engines)
