# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""streamprobe CLI."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from ..config import METHOD_POLICIES, HttpSettings, load_http_settings
from ..http import create_default_http_client
from ..http.models import RetryConfig
from ..http.url import validate_stream_url
from ..log import setup_logging
from ..models import CombinedProbeResult, MetadataExtractionResult
from ..probe.metadata import format_metadata_for_display, validate_metadata
from ..runtime import StreamProbe


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Test an internet radio stream and read its current metadata")
    parser.add_argument("url", help="Stream URL to test")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of human-friendly summary",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for self-signed stream servers)",
    )
    parser.add_argument(
        "--metadata-only",
        action="store_true",
        help="Skip the connection test and only read ICY metadata",
    )
    parser.add_argument(
        "--budget-ms",
        type=int,
        default=None,
        help="Time budget for --metadata-only reads (default: probe ceiling)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Attempts for --metadata-only reads (default: 1)",
    )
    parser.add_argument("--fallback", default=None, help="Fallback stream URL tested when the primary fails")
    parser.add_argument("--method", choices=METHOD_POLICIES, default=None, help="Connection test method policy")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def _print_json(data: Any) -> None:
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    json.dump(payload, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _print_metadata(result: MetadataExtractionResult | None, metadata_error: str | None = None) -> None:
    if result is None or not result.success or result.metadata is None:
        error = metadata_error or (result.error if result is not None else None)
        if error:
            print(f"Metadata: unavailable ({error})")
        return
    title, details = format_metadata_for_display(result.metadata)
    print(f"Now playing: {title}")
    for line in details:
        print(f"  {line}")
    complete, missing = validate_metadata(result.metadata)
    if not complete:
        print(f"  Not advertised: {', '.join(missing)}")


def _pretty_print(result: CombinedProbeResult) -> None:
    outcome = result.connection
    verdict = "OK" if outcome.is_valid else "FAILED"
    print(f"[streamprobe] Stream: {verdict}")
    status = outcome.status_code if outcome.status_code is not None else "-"
    print(f"HTTP status: {status}  Content-Type: {outcome.content_type or '-'}  Time: {outcome.response_time_ms}ms")
    if outcome.error_message:
        print(f"Error: {outcome.error_message}")
    if outcome.is_valid:
        _print_metadata(result.metadata_result, result.metadata_error)


def _print_hints(url: str) -> None:
    for hint in validate_stream_url(url).suggestions:
        print(f"Hint: {hint}", file=sys.stderr)


def _retry_config(settings: HttpSettings, attempts: int) -> RetryConfig:
    cfg = RetryConfig.from_settings(settings)
    cfg.max_attempts = max(1, attempts)
    return cfg


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        settings.verify_ssl = False
    if args.method:
        settings.method_policy = args.method

    if not args.json:
        _print_hints(args.url)

    http_client = create_default_http_client(settings)

    with StreamProbe(http_client=http_client, settings=settings) as probe:
        if args.metadata_only:
            if args.retries > 1:
                metadata = probe.get_current_song_with_retry(
                    args.url,
                    args.budget_ms,
                    retry_config=_retry_config(settings, args.retries),
                )
            else:
                metadata = probe.get_current_song(args.url, args.budget_ms)
            if args.json:
                _print_json(metadata)
            else:
                _print_metadata(metadata)
            return 0 if metadata.success else 1

        target = args.url
        if args.fallback:
            selection = probe.test_connection_with_fallback(args.url, args.fallback)
            if not selection.outcome.is_valid:
                result = CombinedProbeResult(connection=selection.outcome)
                if args.json:
                    _print_json(result)
                else:
                    _pretty_print(result)
                return 1
            if selection.used_fallback:
                print(f"Primary stream failed; using fallback {selection.tested_url}", file=sys.stderr)
            target = selection.tested_url

        result = probe.probe(target)

    if args.json:
        _print_json(result)
    else:
        _pretty_print(result)

    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
