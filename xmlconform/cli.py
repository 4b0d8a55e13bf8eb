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
Command line interface of xmlconform.

Exit status is 0 when a run completes, regardless of the outcomes of
test cases, and 1 for configuration errors (unknown engine or suite,
missing catalog file, unreadable reports).
"""
import argparse
import datetime
import logging
import sys
from collections.abc import Sequence
from typing import Any, Optional, TextIO

from xmlconform import __version__
from xmlconform.config import KNOWN_SUITES, RunConfig, get_suite_config, load_skip_file
from xmlconform.engines import ENGINES, get_engine
from xmlconform.exceptions import ConfigurationError
from xmlconform.outcomes import TestResult
from xmlconform.reporter import REPORT_FORMATS, ComplianceAggregator, \
    ComplianceReport, compare_reports
from xmlconform.runner import run_suite

logger = logging.getLogger('xmlconform')

PROGRESS_CHARS = {
    'pass': '.',
    'fail': 'F',
    'error': 'E',
    'n/a': 'n',
    'skipped': 's',
}


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xmlconform',
        description="Run W3C conformance test suites against XML processors "
                    "and report their compliance.",
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    run_parser = subparsers.add_parser('run', help="run a test suite with an engine")
    run_parser.add_argument('-e', '--engine', required=True, metavar='ENGINE',
                            help=f"the engine to test ({', '.join(ENGINES)})")
    run_parser.add_argument('-s', '--suite', required=True, metavar='SUITE',
                            help=f"the test suite to run ({', '.join(KNOWN_SUITES)})")
    run_parser.add_argument('-c', '--catalog', metavar='CATALOG_FILE',
                            help="the path of the catalog file, overrides the default "
                                 "path under the test suites directory")
    run_parser.add_argument('-f', '--filter', metavar='PATTERN',
                            help="run only the test sets which name matches a regex pattern")
    run_parser.add_argument('-o', '--output', default='summary', choices=REPORT_FORMATS,
                            help="the format of the report written to stdout "
                                 "(default is %(default)s)")
    run_parser.add_argument('-r', dest='report', metavar='REPORT_FILE',
                            help="write a report (JSON format) to the given file")
    run_parser.add_argument('--skip-file', metavar='FILE',
                            help="a file with the ids of the test cases to skip, one per line")
    run_parser.add_argument('--xpath-version', metavar='VERSION',
                            help="the XPath version of the engine")
    run_parser.add_argument('--xsd-version', metavar='VERSION',
                            help="the XSD version of the engine")
    run_parser.add_argument('--strict-errors', action='store_true', default=False,
                            help="require matching codes for expected errors")
    run_parser.add_argument('--max-failures', type=int, default=10, metavar='N',
                            help="the max number of failures listed in the summary "
                                 "(default is %(default)s)")
    add_verbosity_arguments(run_parser)

    report_parser = subparsers.add_parser(
        'report', help="render a saved JSON report in another format"
    )
    report_parser.add_argument('report_file', metavar='REPORT_FILE',
                               help="a report saved in JSON format")
    report_parser.add_argument('-o', '--output', default='summary', choices=REPORT_FORMATS,
                               help="the output format (default is %(default)s)")
    report_parser.add_argument('-r', dest='output_file', metavar='OUTPUT_FILE',
                               help="write the output to a file instead of stdout")
    report_parser.add_argument('--max-failures', type=int, default=10, metavar='N',
                               help="the max number of failures listed in the summary")
    add_verbosity_arguments(report_parser)

    compare_parser = subparsers.add_parser(
        'compare', help="compare saved JSON reports of different engines"
    )
    compare_parser.add_argument('report_files', nargs='+', metavar='REPORT_FILE',
                                help="reports saved in JSON format")
    compare_parser.add_argument('-o', '--output', default='summary', choices=REPORT_FORMATS,
                                help="the output format (default is %(default)s)")
    add_verbosity_arguments(compare_parser)

    engines_parser = subparsers.add_parser('engines', help="list the available engines")
    add_verbosity_arguments(engines_parser)
    return parser


def add_verbosity_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-v', dest='verbose', action='count', default=0,
                       help="increase verbosity: one option for showing the test sets "
                            "that are run, two for debug")
    group.add_argument('-q', '--quiet', action='store_true', default=False,
                       help="run without printing progress or warnings")


def setup_logging(verbose: int = 0, quiet: bool = False) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(format='%(levelname)s: %(message)s', stream=sys.stderr)
    logger.setLevel(level)


def load_report(path: str) -> ComplianceReport:
    try:
        with open(path, encoding='utf-8') as fp:
            return ComplianceReport.from_json(fp.read())
    except OSError as err:
        raise ConfigurationError(f"cannot read report file {path!r}: {err}") from None
    except ValueError as err:
        raise ConfigurationError(f"{path!r} is not a JSON compliance report: {err}") from None


def write_output(text: str, path: Optional[str] = None,
                 stream: Optional[TextIO] = None) -> None:
    if path is None:
        (stream or sys.stdout).write(text)
        return

    try:
        with open(path, 'w', encoding='utf-8') as fp:
            fp.write(text)
    except OSError as err:
        raise ConfigurationError(f"cannot write file {path!r}: {err}") from None


###
# Commands

def run_command(args: argparse.Namespace) -> int:
    config = RunConfig(
        engine=args.engine,
        suite=get_suite_config(args.suite),
        catalog=args.catalog,
        engine_options={'xpath_version': args.xpath_version,
                        'xsd_version': args.xsd_version},
        filter=args.filter,
        skip=load_skip_file(args.skip_file) if args.skip_file else frozenset(),
        strict_errors=args.strict_errors,
        max_failures=args.max_failures,
    )
    config.check()
    engine = get_engine(config.engine, **config.engine_options)

    show_progress = not args.quiet and not args.verbose
    aggregator = ComplianceAggregator(str(engine), config.suite.name)

    def on_result(result: TestResult) -> None:
        aggregator.add(result)
        if show_progress:
            print(PROGRESS_CHARS.get(result.outcome.label, '?'),
                  end='', file=sys.stderr, flush=True)

    logger.info("run %s test suite with engine %s", config.suite.title, engine)
    start_time = datetime.datetime.now()
    run_suite(
        catalog_path=config.catalog_path,
        engine=engine,
        suite=config.suite.name,
        pattern=config.get_pattern(),
        skip=config.skip,
        strict_error_codes=config.strict_errors,
        on_result=on_result,
    )
    if show_progress:
        print(file=sys.stderr)

    elapsed_time = (datetime.datetime.now() - start_time).seconds
    logger.info("total elapsed time: %ds", elapsed_time)

    report = aggregator.get_report()
    if args.report:
        write_output(report.to_json(), args.report)
    write_output(report.render(args.output, **get_render_options(args)))
    return 0


def get_render_options(args: argparse.Namespace) -> dict[str, Any]:
    if args.output == 'summary':
        return {'max_failures': args.max_failures}
    return {}


def report_command(args: argparse.Namespace) -> int:
    report = load_report(args.report_file)
    write_output(report.render(args.output, **get_render_options(args)), args.output_file)
    return 0


def compare_command(args: argparse.Namespace) -> int:
    comparison = compare_reports(load_report(path) for path in args.report_files)
    write_output(comparison.render(args.output))
    return 0


def engines_command(args: argparse.Namespace) -> int:
    width = max(len(name) for name in ENGINES)
    for name, engine_class in ENGINES.items():
        engine = engine_class()
        print(f"{name:<{width}}  {engine_class.description}")
        print(f"{'':<{width}}  default: {engine}")
        if engine.library_version:
            print(f"{'':<{width}}  library version: {engine.library_version}")
    return 0


COMMANDS = {
    'run': run_command,
    'report': report_command,
    'compare': compare_command,
    'engines': engines_command,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = get_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        return COMMANDS[args.command](args)
    except ConfigurationError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
