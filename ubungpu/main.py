from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import Palette, Settings, load_settings
from .install_log import InstallLog
from .lib.command import CommandRunner
from .lib.env import is_root
from .logging_utils import configure_logging
from .orchestrator import run_build
from .pipeline import SetupError
from .selfinstall import delete_logs, install_self, uninstall_self
from .status import StatusReporter

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LINES = 50


@dataclass(frozen=True)
class CliContext:
    settings: Settings
    install_log: InstallLog
    runner: CommandRunner
    arg: Optional[str] = None


def _clear_screen() -> None:
    if sys.stdout.isatty():
        sys.stdout.write("\033[2J\033[H")
        sys.stdout.flush()


def _human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "K", "M", "G"):
        if value < 1024 or unit == "G":
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def _log_header(ctx: CliContext, title: str, *, with_size: bool) -> None:
    p = ctx.settings.palette
    st = ctx.install_log.path.stat()
    print(p.paint(title, "blue"))
    print(p.paint(f"Last modified: {time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(st.st_mtime))}", "blue"))
    if with_size:
        print(p.paint(f"File size: {_human_size(st.st_size)}", "blue"))
    print(p.paint("============================================", "blue"))
    print()


def _no_logs(ctx: CliContext) -> int:
    print(ctx.settings.palette.paint(f"No logs found at: {ctx.install_log.path}", "yellow"))
    return 0


def render_help(settings: Settings) -> str:
    p = settings.palette
    name = settings.name

    def c(command: str) -> str:
        return p.paint(f"  {command:<16}", "green")

    return "\n".join(
        [
            "",
            p.paint(f"===== {name} v{settings.version} Help =====", "blue"),
            f"Usage: {name} [COMMAND]",
            "",
            "License:",
            "- Apache 2.0",
            "",
            "Repository:",
            f"- {settings.repository}",
            "",
            "Commands:",
            f"{c('build')}- Run full GPU setup",
            f"{c('status')}- Show GPU status",
            f"{c('install')}- Install script system-wide",
            f"{c('uninstall')}- Remove script from system",
            f"{c('logs')}- Show full logs",
            f"{c('recent-logs [n]')}- Show last n lines of logs (default: {DEFAULT_RECENT_LINES})",
            f"{c('delete-logs')}- Delete all logs",
            f"{c('help')}- Show this help message",
            f"{c('version')}- Show version information",
            "",
            "Examples:",
            f"  {name} build            # Run full GPU setup",
            f"  {name} status           # Show GPU status",
            f"  {name} logs             # Show all logs",
            f"  {name} recent-logs 100  # Show last 100 log lines",
            f"  {name} delete-logs      # Delete all logs",
            "",
            "Requirements:",
            "- Ubuntu system (20.04 or newer recommended)",
            "- NVIDIA or AMD GPU",
            "- Must be run as root",
            "",
        ]
    )


def cmd_help(ctx: CliContext) -> int:
    print(render_help(ctx.settings))
    return 0


def cmd_version(ctx: CliContext) -> int:
    s = ctx.settings
    print(s.palette.paint(f"{s.name} v{s.version}", "blue"))
    return 0


def cmd_build(ctx: CliContext) -> int:
    _clear_screen()
    print(ctx.settings.palette.paint(f"===== Unified GPU Setup Script v{ctx.settings.version} =====", "blue"))
    run_build(ctx.settings, ctx.runner, ctx.install_log)
    return 0


def cmd_status(ctx: CliContext) -> int:
    _clear_screen()
    reporter = StatusReporter(ctx.settings, ctx.runner)
    print()
    print(reporter.banner())
    print()
    print(reporter.render())
    return 0


def cmd_install(ctx: CliContext) -> int:
    install_self(ctx.settings)
    return 0


def cmd_uninstall(ctx: CliContext) -> int:
    uninstall_self(ctx.settings, ctx.install_log)
    return 0


def cmd_logs(ctx: CliContext) -> int:
    text = ctx.install_log.read_all()
    if text is None:
        return _no_logs(ctx)
    _log_header(ctx, f"===== Log File Contents ({ctx.install_log.path}) =====", with_size=True)
    sys.stdout.write(text)
    return 0


def cmd_recent_logs(ctx: CliContext) -> int:
    raw = ctx.arg if ctx.arg is not None else str(DEFAULT_RECENT_LINES)
    try:
        n = int(raw)
    except ValueError:
        n = -1
    if n < 0:
        print(ctx.settings.palette.paint(f"Invalid line count: {raw}", "red"))
        return 1

    lines = ctx.install_log.read_tail(n)
    if lines is None:
        return _no_logs(ctx)
    _log_header(ctx, f"===== Recent Logs (Last {n} lines) =====", with_size=False)
    for line in lines:
        print(line)
    return 0


def cmd_delete_logs(ctx: CliContext) -> int:
    delete_logs(ctx.settings, ctx.install_log)
    return 0


COMMANDS: Dict[str, Callable[[CliContext], int]] = {
    "build": cmd_build,
    "status": cmd_status,
    "install": cmd_install,
    "uninstall": cmd_uninstall,
    "logs": cmd_logs,
    "recent-logs": cmd_recent_logs,
    "delete-logs": cmd_delete_logs,
    "help": cmd_help,
    "version": cmd_version,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ubungpu", add_help=False)
    p.add_argument("command", nargs="?", default="help")
    p.add_argument("arg", nargs="?", default=None)
    p.add_argument("--config", default=None, help="YAML settings file (default: /etc/ubungpu/config.yaml if present)")
    p.add_argument("-v", "--verbose", action="store_true", help="Also show the commands being run")
    p.add_argument("-h", "--help", action="store_true")
    return p


def main(argv: Optional[list[str]] = None, *, runner: Optional[CommandRunner] = None) -> int:
    if not is_root():
        print("This script must be run as root")
        return 1

    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    install_log = InstallLog(settings.log_dir)
    configure_logging(settings, install_log, verbose=bool(args.verbose))

    ctx = CliContext(
        settings=settings,
        install_log=install_log,
        runner=runner or CommandRunner(),
        arg=args.arg,
    )

    command = "help" if args.help else args.command
    handler = COMMANDS.get(command)
    if handler is None:
        print(settings.palette.paint(f"Unknown command: {command}", "red"))
        cmd_help(ctx)
        return 1

    try:
        return handler(ctx)
    except SetupError as e:
        logger.error("%s", e)
        return 1


def install_signal_handlers(palette: Palette) -> None:
    def _interrupted(signum, frame):
        print(f"\n{palette.paint('Script interrupted', 'red')}")
        raise SystemExit(1)

    signal.signal(signal.SIGINT, _interrupted)
    signal.signal(signal.SIGTERM, _interrupted)


def entrypoint() -> int:
    install_signal_handlers(Palette())
    return main()


if __name__ == "__main__":
    raise SystemExit(entrypoint())
