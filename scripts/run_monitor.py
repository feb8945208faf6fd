#!/usr/bin/env python3
"""Run a fence monitor session against the device's MQTT status topic.

Reads ``FENCEWATCH_*`` environment variables, subscribes to the status
topic and prints every new log line, plus one line per saved capture.

Example::

    FENCEWATCH_MQTT_HOST=broker.local python scripts/run_monitor.py --camera
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fencewatch import (  # noqa: E402
    ArtifactRef,
    CaptureError,
    CaptureRequest,
    FenceMonitor,
    FenceWatchConfig,
    FenceWatchError,
    LogEntry,
    SystemState,
)
from fencewatch.ingestion.mqtt import MqttSnapshotSource  # noqa: E402

_LOG = logging.getLogger("run_monitor")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Monitor the perimeter fence over MQTT and capture evidence on alarms.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--camera",
        action="store_true",
        help="Start the camera so alarms produce captures.",
    )
    parser.add_argument(
        "--capture-dir",
        default=None,
        help="Primary evidence directory (overrides FENCEWATCH_CAPTURE_DIR).",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print the latest history point after every snapshot.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


class _Printer:
    """Prints log entries as they appear in successive states."""

    def __init__(self, show_history: bool) -> None:
        self._show_history = show_history
        self._newest: LogEntry | None = None

    def on_state(self, state: SystemState) -> None:
        fresh: list[LogEntry] = []
        # Newest first; stop at the entry printed last time.
        for entry in state.log.entries:
            if entry is self._newest:
                break
            fresh.append(entry)
        if fresh:
            self._newest = fresh[0]
        for entry in reversed(fresh):
            print(f"[{entry.timestamp}] {entry.severity.upper():5} {entry.message}")
        if self._show_history and state.history.latest is not None:
            point = state.history.latest
            print(
                f"[{point.time}] temp={point.temp} hum={point.hum} soil={point.soil} "
                f"rain={point.rain} smoke={point.smoke}",
            )

    @staticmethod
    def on_capture(artifact: ArtifactRef) -> None:
        print(f"[capture] {artifact.tag} -> {artifact.path} ({artifact.sink}, {artifact.size_bytes} bytes)")

    @staticmethod
    def on_capture_error(request: CaptureRequest, exc: CaptureError) -> None:
        print(f"[capture] {request.tag} failed: {exc}", file=sys.stderr)


async def _run(args: argparse.Namespace) -> int:
    overrides = {"capture_dir": args.capture_dir} if args.capture_dir else {}
    config = FenceWatchConfig.from_env(**overrides)
    printer = _Printer(args.history)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    async with FenceMonitor(
        config,
        on_state=printer.on_state,
        on_capture=printer.on_capture,
        on_capture_error=printer.on_capture_error,
    ) as monitor:
        if args.camera:
            monitor.start_camera()
        source = MqttSnapshotSource.from_config(config, loop=loop, on_payload=monitor.submit_nowait)
        source.start()
        _LOG.info("Listening on %s:%s topic=%s", config.mqtt_host, config.mqtt_port, config.mqtt_topic)
        try:
            if args.duration > 0:
                try:
                    await asyncio.wait_for(stop.wait(), timeout=args.duration)
                except TimeoutError:
                    pass
            else:
                await stop.wait()
        finally:
            source.stop()
            await monitor.wait_idle()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except FenceWatchError as exc:
        print(f"[monitor] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
