import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path

from voice_subtitles.config import SubtitlerConfig
from voice_subtitles.log_format import configure_logging
from voice_subtitles.ports.control import ControlCommand

ENV_FILE_PATH = Path.home() / ".config" / "voice-subtitles" / "env"

CLIENT_COMMANDS = ("toggle", "status", "cues", "edit", "active", "load")


def _load_env_file(path: Path = ENV_FILE_PATH) -> None:
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live microphone subtitles for video playback")
    parser.add_argument("--record", action="store_true", help="Start recording as soon as the daemon is up")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("toggle", help="Start or stop generating subtitles")
    subparsers.add_parser("status", help="Query the current phase")
    subparsers.add_parser("cues", help="List generated cues")

    edit_parser = subparsers.add_parser("edit", help="Replace the text of a cue")
    edit_parser.add_argument("id", type=int, help="Cue id")
    edit_parser.add_argument("text", help="New cue text")

    active_parser = subparsers.add_parser("active", help="Show the cue visible at a playback time")
    active_parser.add_argument("time", type=float, nargs="?", help="Playback time in seconds")

    subparsers.add_parser("load", help="Reset the media: clear cues and rewind")
    return parser


def main() -> None:
    _load_env_file()
    args = build_parser().parse_args()

    config = SubtitlerConfig()
    if args.record:
        config.record_on_start = True

    if args.command in CLIENT_COMMANDS:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
        asyncio.run(_run_client_command(args, config))
    else:
        configure_logging(verbose=args.verbose, log_file=config.log_file)
        asyncio.run(_run_daemon(config))


def _client_request(args: argparse.Namespace) -> tuple[str, dict | None]:
    if args.command == "edit":
        return "edit", {"id": args.id, "text": args.text}
    if args.command == "active" and args.time is not None:
        return "active", {"time": args.time}
    return args.command, None


def _print_result(command: str, result: dict) -> None:
    if result.get("status") != "ok":
        print(result.get("error", result), file=sys.stderr)
        sys.exit(1)
    if command == "cues":
        for cue in result["cues"]:
            print(f"[{cue['id']}] {cue['range']}  {cue['text']}")
        return
    if command == "active":
        cue = result.get("cue")
        print(cue["text"] if cue else "(no cue)")
        return
    print(json.dumps(result))


async def _run_client_command(args: argparse.Namespace, config: SubtitlerConfig) -> None:
    from voice_subtitles.adapters.unix_control import UnixSocketControlClient

    client = UnixSocketControlClient(socket_path=config.socket_path)
    action, payload = _client_request(args)

    try:
        result = await client.send_command(action, payload)
    except ConnectionRefusedError:
        print("Subtitle daemon is not running", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError:
        print("Subtitle daemon is not running", file=sys.stderr)
        sys.exit(1)

    _print_result(args.command, result)


async def _run_daemon(config: SubtitlerConfig) -> None:
    from voice_subtitles.health import run_startup_checks, has_critical_failures
    from voice_subtitles.factory import create_app

    results = run_startup_checks(config)
    if has_critical_failures(results):
        logging.error("Critical health check failures, aborting startup")
        sys.exit(1)

    controller, control, handler = create_app(config)

    shutdown_event = asyncio.Event()
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    await control.start()

    async def control_loop() -> None:
        async for cmd in control.commands():
            response = await handler.handle(cmd)
            await control.send_response(response)

    control_task = asyncio.create_task(control_loop())
    if config.record_on_start:
        await handler.handle(ControlCommand(action="start"))

    try:
        await shutdown_event.wait()
    finally:
        control_task.cancel()
        try:
            await asyncio.wait_for(control_task, timeout=1.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        try:
            await asyncio.wait_for(controller.stop(), timeout=3.0)
        except asyncio.TimeoutError:
            logging.warning("Timed out closing the transcription session")
        await control.stop()
