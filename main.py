#!/usr/bin/env python3
"""
WAF-Probe-Harness
检验 WAF 是否拦截恶意载荷 (XSS / SQL 注入 / 命令执行) 并放行正常流量

Usage:
    python main.py serve --port 8080
    python main.py probe xss "<script>alert(1)</script>" --target http://127.0.0.1:8080
    python main.py batch --target https://waf.example.com --class sqli --json
    python main.py examples --class rce
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from core import __version__
from core.detectors import AttackClass, get_examples
from core.exceptions import (
    AnalysisError,
    ConfigError,
    EngineError,
    InputError,
    WAFProbeError,
)
from core.harness import BatchResult, TestReport, WAFTestHarness
from core.probe import ANALYSIS_REMOTE, ProbeConfig, ProbeDispatcher, create_analyzer
from core.server import ServerConfig, run_server
from core.verdict import SessionStatistics, StatisticsRecorder
from utils.logger import configure_root_logger, preview_payload

logger = logging.getLogger("waf_probe")

EXIT_OK = 0
EXIT_USER_ERROR = 1
EXIT_INTERNAL_ERROR = 2

GENERIC_RETRY_MESSAGE = "Internal error, please retry the test"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """控制台默认只显示警告；--log-file 记录包括载荷预览在内的完整调试日志"""
    level = logging.DEBUG if verbose else logging.WARNING
    configure_root_logger(level=level, log_file=log_file, force=True)


def print_banner() -> None:
    print(f"WAF-Probe-Harness v{__version__}")


def build_probe_config(args: argparse.Namespace) -> ProbeConfig:
    """环境变量为基础，命令行参数覆盖"""
    config = ProbeConfig.from_env()
    if getattr(args, "target", None):
        config.base_url = args.target
    if getattr(args, "timeout", None) is not None:
        config.timeout = args.timeout
    if getattr(args, "remote", False):
        config.analysis = ANALYSIS_REMOTE
    if getattr(args, "strict", False):
        config.inconclusive_as_unknown = True
    return config.validate()


def print_report(report: TestReport) -> None:
    classification = report.classification
    print(f"\n[*] Payload:      {preview_payload(report.payload)}")
    print(f"[*] Attack class: {report.attack_class.display_name}")
    if classification.is_malicious:
        print(
            f"[*] Analysis:     MALICIOUS ({classification.matched_rule}, "
            f"{classification.confidence}%)"
        )
    else:
        print("[*] Analysis:     BENIGN")
    print(f"[*] Probe:        {report.probe}")
    if report.payloads_match is not None:
        print(f"[*] Echo intact:  {report.payloads_match}")
    print(f"\n[{report.explanation.severity.value.upper()}] {report.verdict.value}")
    print(f"    {report.explanation.reason}")
    print(f"    -> {report.explanation.remediation}")


def print_statistics(stats: SessionStatistics) -> None:
    print(
        f"""
    Total:            {stats.total}
    Passed:           {stats.passed}
    Failed:           {stats.failed}
    False Positives:  {stats.false_positives}
    Unknown:          {stats.unknown}
    Blocked:          {stats.blocked_count}
    Allowed:          {stats.allowed_count}
    Pass Rate:        {stats.pass_rate:.1%}
    """
    )


def cmd_serve(args: argparse.Namespace) -> int:
    config = ServerConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.delay is not None:
        config.response_delay = args.delay
    print(f"[*] Serving demo target on http://{config.host}:{config.port}")
    run_server(config)
    return EXIT_OK


def cmd_probe(args: argparse.Namespace) -> int:
    config = build_probe_config(args)
    statistics = StatisticsRecorder()
    harness = WAFTestHarness(
        ProbeDispatcher(config), create_analyzer(config), statistics=statistics
    )

    try:
        report = harness.run_test_sync(args.payload, args.attack_class, timeout=args.timeout)
    finally:
        harness.close_sync()

    if args.json:
        output = report.to_dict()
        output["statistics"] = statistics.snapshot().to_dict()
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        print_report(report)
        print_statistics(statistics.snapshot())
    return EXIT_OK


async def run_batch(
    config: ProbeConfig,
    attack_class: Optional[AttackClass],
    concurrency: int,
    statistics: StatisticsRecorder,
) -> List[BatchResult]:
    examples = get_examples(attack_class)
    cases = [(example.value, example.attack_class) for example in examples]

    harness = WAFTestHarness(
        ProbeDispatcher(config), create_analyzer(config), statistics=statistics
    )
    try:
        return await harness.run_batch(cases, concurrency=concurrency)
    finally:
        await harness.close()


def cmd_batch(args: argparse.Namespace) -> int:
    config = build_probe_config(args)
    attack_class = AttackClass.parse(args.attack_class) if args.attack_class else None
    statistics = StatisticsRecorder()

    results = asyncio.run(run_batch(config, attack_class, args.concurrency, statistics))
    snapshot = statistics.snapshot()

    if args.json:
        output = {
            "results": [result.to_dict() for result in results],
            "statistics": snapshot.to_dict(),
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        print(f"\n{'CLASS':<6} {'VERDICT':<15} {'HTTP':<6} {'ANALYSIS':<26} PAYLOAD")
        print("-" * 90)
        for result in results:
            if result.report is None:
                print(
                    f"{result.attack_class:<6} {'INCOMPLETE':<15} {'-':<6} "
                    f"{result.error.message[:26]:<26} {preview_payload(result.payload, 40)}"
                )
                continue
            report = result.report
            analysis = report.classification.matched_rule or "benign"
            print(
                f"{report.attack_class.value:<6} {report.verdict.value:<15} "
                f"{str(report.probe.status_label):<6} {analysis[:26]:<26} "
                f"{preview_payload(report.payload, 40)}"
            )
        print_statistics(snapshot)

    errors = [result.error for result in results if result.error is not None]
    if any(isinstance(error, EngineError) for error in errors):
        return EXIT_INTERNAL_ERROR
    if errors:
        return EXIT_USER_ERROR
    return EXIT_OK


def cmd_examples(args: argparse.Namespace) -> int:
    attack_class = AttackClass.parse(args.attack_class) if args.attack_class else None
    for example in get_examples(attack_class):
        kind = "malicious" if example.malicious else "benign"
        print(f"[{example.attack_class.value}] {kind:<9} {example.value}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WAF-Probe-Harness - WAF effectiveness probe",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s serve --port 8080
    %(prog)s probe xss "<script>alert(1)</script>" --target http://127.0.0.1:8080
    %(prog)s batch --class sqli --concurrency 10 --json
    %(prog)s examples --class rce
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--log-file", metavar="PATH", help="Write a rotating debug log (payloads escaped)"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve命令
    serve_parser = subparsers.add_parser("serve", help="Run the demo target server")
    serve_parser.add_argument("--host", help="Listen address (default: $HOST or 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Listen port (default: $PORT or 8080)")
    serve_parser.add_argument(
        "--delay", type=float, help="Simulated processing delay for /api/test (seconds)"
    )

    # probe命令
    probe_parser = subparsers.add_parser("probe", help="Run a single WAF test")
    probe_parser.add_argument("attack_class", help="Attack class: xss / sqli / rce")
    probe_parser.add_argument("payload", help="Payload to submit")
    _add_target_arguments(probe_parser)

    # batch命令
    batch_parser = subparsers.add_parser("batch", help="Run all example payloads concurrently")
    batch_parser.add_argument("--class", dest="attack_class", help="Only this attack class")
    batch_parser.add_argument("--concurrency", type=int, default=5, help="Concurrent tests")
    _add_target_arguments(batch_parser)

    # examples命令
    examples_parser = subparsers.add_parser("examples", help="List example payloads")
    examples_parser.add_argument("--class", dest="attack_class", help="Only this attack class")

    return parser


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--target", help="Target base URL (default: $WAF_PROBE_TARGET)")
    parser.add_argument("--timeout", type=float, help="Probe timeout (seconds)")
    parser.add_argument(
        "--remote", action="store_true", help="Use the target's /api/analyze endpoint"
    )
    parser.add_argument(
        "--strict", action="store_true", help="Report inconclusive probes as UNKNOWN"
    )
    parser.add_argument("--json", action="store_true", help="JSON output")


COMMANDS = {
    "serve": cmd_serve,
    "probe": cmd_probe,
    "batch": cmd_batch,
    "examples": cmd_examples,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return EXIT_OK

    setup_logging(args.verbose, args.log_file)
    if args.command != "examples" and not getattr(args, "json", False):
        print_banner()

    try:
        return COMMANDS[args.command](args)
    except (InputError, AnalysisError, ConfigError) as e:
        print(f"[!] {e.message}", file=sys.stderr)
        return EXIT_USER_ERROR
    except EngineError:
        print(f"[!] {GENERIC_RETRY_MESSAGE}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    except WAFProbeError as e:
        logger.exception(f"未处理的错误: {e}")
        print(f"[!] {GENERIC_RETRY_MESSAGE}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    except KeyboardInterrupt:
        print("\n[!] Interrupted by user", file=sys.stderr)
        return EXIT_USER_ERROR


if __name__ == "__main__":
    sys.exit(main())
