#!/usr/bin/env python3
"""
Speedtest server -- LAN download / upload / latency endpoints.

Usage::

    python speedtest.py                       # serve on 0.0.0.0:8080
    python speedtest.py --port 9000           # different port
    python speedtest.py --duration 10         # shorter /api/speedtest phases
    python speedtest.py --save-config         # persist the flags given
    python speedtest.py --show-config         # print effective settings
    python speedtest.py --set port=9000       # persist a single setting
    python speedtest.py --get port            # print a stored setting
    python speedtest.py --bench               # run the combined test in-process
    python speedtest.py --bench --json        # ... and print JSON
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Tuple

from aiohttp import web

from server.app import create_app
from server.config import (
    DEFAULTS,
    config_path,
    get_config_value,
    load_config,
    save_config,
    set_config_value,
)
from server.constants import MAX_PORT, MAX_TEST_DURATION, MIN_PORT, MIN_TEST_DURATION
from server.download import DownloadMeasurer
from server.latency import LatencyProbe
from server.payload import SharedBuffer
from server.result import SpeedTestResult, assemble_result
from server.upload import UploadMeasurer
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_config,
    print_final_results,
    print_header,
    print_routes,
    setup_logging,
)


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(port: int, test_duration: float) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"Port must be between {MIN_PORT} and {MAX_PORT}")
    if not MIN_TEST_DURATION <= test_duration <= MAX_TEST_DURATION:
        raise ValueError(
            f"Test duration must be between {MIN_TEST_DURATION} and {MAX_TEST_DURATION} s"
        )


def _merge_args(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Command-line flags win over the config file."""
    merged = dict(config)
    overrides = {
        "host": args.host,
        "port": args.port,
        "static_dir": args.static_dir,
        "test_duration": args.duration,
        "log_level": args.log_level,
    }
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return merged


def _parse_setting(text: str) -> Tuple[str, Any]:
    """
    Split ``KEY=VALUE`` and coerce VALUE to the type of the key's default.

    Raises ``ValueError`` for unknown keys or values of the wrong type.
    """
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep:
        raise ValueError(f"Expected KEY=VALUE, got {text!r}")
    if key not in DEFAULTS:
        raise ValueError(f"Unknown setting {key!r} (known: {', '.join(sorted(DEFAULTS))})")

    kind = type(DEFAULTS[key])
    try:
        return key, kind(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Setting {key!r} expects {kind.__name__}: {exc}") from exc


# ---------------------------------------------------------------------------
# In-process benchmark
# ---------------------------------------------------------------------------

async def run_bench(test_duration: float, json_output: bool = False) -> SpeedTestResult:
    """Run the combined measurement without HTTP, with a progress bar."""
    buffer = SharedBuffer()

    dl = DownloadMeasurer(buffer, duration_seconds=test_duration)
    ul = UploadMeasurer(duration_seconds=test_duration)

    if json_output:
        download = await dl.measure()
        upload = await ul.measure()
    else:
        console.print("[bold]Measuring download...[/bold]")
        progress = ProgressDisplay()
        progress.start("Download")
        dl.on_progress = progress.update
        try:
            download = await dl.measure()
        finally:
            progress.stop()

        console.print("[bold]Measuring upload...[/bold]")
        progress = ProgressDisplay()
        progress.start("Upload")
        ul.on_progress = progress.update
        try:
            upload = await ul.measure()
        finally:
            progress.stop()

    latency = await LatencyProbe().measure()

    result = assemble_result(
        download_speed=download.speed_mb_s,
        upload_speed=upload.speed_mb_s,
        latency=latency,
    )

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_final_results(result.download_speed, result.upload_speed, result.latency)

    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Speedtest server -- LAN download, upload and latency endpoints",
    )
    # Server settings (default: config file, then built-in defaults)
    parser.add_argument("--host", type=str, metavar="ADDR", help=f"Bind address (default: {DEFAULTS['host']})")
    parser.add_argument("--port", "-p", type=int, metavar="PORT", help=f"Listen port (default: {DEFAULTS['port']})")
    parser.add_argument("--static-dir", type=str, metavar="DIR", help="Directory with index.html and assets")
    parser.add_argument("--duration", type=float, metavar="SECS", help="Seconds per /api/speedtest phase (default: 60)")
    parser.add_argument("--log-level", type=str, metavar="LEVEL", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level (default: INFO)")

    # Config file
    parser.add_argument("--save-config", action="store_true", help="Persist the effective settings and exit")
    parser.add_argument("--show-config", action="store_true", help="Print the effective settings and exit")
    parser.add_argument("--get", type=str, metavar="KEY", help="Print one stored setting and exit")
    parser.add_argument("--set", type=str, metavar="KEY=VALUE", help="Persist one setting and exit")

    # Benchmark mode
    parser.add_argument("--bench", action="store_true", help="Run the combined test in-process and exit")
    parser.add_argument("--json", "-j", action="store_true", help="With --bench: print the result as JSON")

    args = parser.parse_args()

    # Single-key config access
    if args.get:
        if args.get not in DEFAULTS:
            console.print(f"[red]Error: Unknown setting '{args.get}'[/red]")
            sys.exit(1)
        print(get_config_value(args.get))
        return

    if args.set:
        try:
            key, value = _parse_setting(args.set)
        except ValueError as exc:
            console.print(f"[red]Error: {exc}[/red]")
            sys.exit(1)
        path = set_config_value(key, value)
        console.print(f"[green]{key} = {value!r} saved to:[/green] {path}")
        return

    settings = _merge_args(load_config(), args)

    # Validate
    try:
        _validate(port=int(settings["port"]), test_duration=float(settings["test_duration"]))
    except (TypeError, ValueError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    setup_logging(settings["log_level"])

    if args.show_config:
        print_config(settings, config_path())
        return

    if args.save_config:
        path = save_config(settings)
        console.print(f"[green]Configuration saved to:[/green] {path}")
        return

    if args.bench:
        try:
            asyncio.run(run_bench(float(settings["test_duration"]), json_output=args.json))
        except KeyboardInterrupt:
            console.print("\n[yellow]Benchmark cancelled by user[/yellow]")
            sys.exit(1)
        return

    app = create_app(
        static_dir=settings["static_dir"],
        test_duration=float(settings["test_duration"]),
    )

    print_header()
    print_routes(settings["host"], int(settings["port"]), float(settings["test_duration"]))

    web.run_app(app, host=settings["host"], port=int(settings["port"]), print=None)


if __name__ == "__main__":
    main()
