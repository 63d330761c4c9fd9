#!/usr/bin/env python3
"""
progconf CLI

Command-line interface for locating, reading, writing and watching a
program's configuration file.
"""

import argparse
import asyncio
import contextlib
import inspect
import json
import logging
import sys
from typing import Optional

from .config import ConfigLocator
from .errors import ConfigError
from .models import LocatorSettings, WatcherSettings


class ProgConfCLI:
    """CLI for progconf."""

    def __init__(self, locator: Optional[ConfigLocator] = None):
        """
        Initialize CLI.

        Args:
            locator: Locator to resolve configurations with (defaults to the live environment)
        """
        self.locator = locator

    def _locator(self, args) -> ConfigLocator:
        if self.locator is not None:
            return self.locator
        options = {"advisory_lock": args.advisory_lock}
        if args.system_root:
            options["system_root"] = args.system_root
        return ConfigLocator(LocatorSettings(**options))

    def cmd_locate(self, args) -> int:
        """Resolve and print the configuration location."""
        conf = self._locator(args).get(args.program, args.file)

        if args.json:
            print(json.dumps({
                "path": str(conf.path),
                "root_path": str(conf.root_path),
                "program_name": conf.program_name,
                "file_name": conf.file_name,
                "is_temporary": conf.is_temporary,
                "exists": conf.exists(),
            }, indent=2))
            return 0

        print(conf.path)
        if conf.is_temporary:
            print("(temporary copy)", file=sys.stderr)
        return 0

    def cmd_cat(self, args) -> int:
        """Print the configuration contents."""
        conf = self._locator(args).get(args.program, args.file)
        sys.stdout.buffer.write(conf.read())
        sys.stdout.buffer.flush()
        return 0

    def cmd_write(self, args) -> int:
        """Replace the configuration contents with stdin."""
        conf = self._locator(args).get(args.program, args.file)
        written = conf.write(sys.stdin.buffer.read())
        print(f"Wrote {written} bytes to {conf.path}", file=sys.stderr)
        return 0

    async def cmd_watch(self, args) -> int:
        """Print the configuration contents every time it changes."""
        conf = self._locator(args).get(args.program, args.file)
        settings = WatcherSettings(settle_ms=args.settle_ms)

        received = 0
        async with conf.watch(settings) as streams:
            print(f"Watching {conf.path}", file=sys.stderr)

            async def print_errors():
                async for error in streams.errors:
                    print(f"Error: {error}", file=sys.stderr)

            errors_task = asyncio.create_task(print_errors())
            try:
                async for content in streams.data:
                    sys.stdout.buffer.write(content)
                    sys.stdout.buffer.flush()
                    received += 1
                    if args.count and received >= args.count:
                        break
            finally:
                errors_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await errors_task

        return 0

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Locate and watch per-program configuration files",
            prog="progconf"
        )
        parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution steps")
        parser.add_argument("--debug", action="store_true", help="Log debug output")
        parser.add_argument("--system-root", help="System configuration root (default: /etc)")
        parser.add_argument("--advisory-lock", action="store_true", help="Use flock on reads and writes")

        subparsers = parser.add_subparsers(dest="command", help="Command to execute")

        locate_parser = subparsers.add_parser("locate", help="Print the resolved configuration path")
        locate_parser.add_argument("program", help="Program name")
        locate_parser.add_argument("file", help="Configuration file name")
        locate_parser.add_argument("--json", action="store_true", help="Output as JSON")

        cat_parser = subparsers.add_parser("cat", help="Print the configuration contents")
        cat_parser.add_argument("program", help="Program name")
        cat_parser.add_argument("file", help="Configuration file name")

        write_parser = subparsers.add_parser("write", help="Replace the configuration with stdin")
        write_parser.add_argument("program", help="Program name")
        write_parser.add_argument("file", help="Configuration file name")

        watch_parser = subparsers.add_parser("watch", help="Print the configuration on every change")
        watch_parser.add_argument("program", help="Program name")
        watch_parser.add_argument("file", help="Configuration file name")
        watch_parser.add_argument("--settle-ms", type=int, default=50, help="Delay before re-reading after a change")
        watch_parser.add_argument("--count", type=int, default=0, help="Exit after this many changes")

        return parser

    def run(self, argv=None) -> int:
        """Run CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        level = logging.WARNING
        if args.debug:
            level = logging.DEBUG
        elif args.verbose:
            level = logging.INFO
        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        cmd_map = {
            "locate": self.cmd_locate,
            "cat": self.cmd_cat,
            "write": self.cmd_write,
            "watch": self.cmd_watch,
        }

        handler = cmd_map[args.command]

        try:
            if inspect.iscoroutinefunction(handler):
                return asyncio.run(handler(args))
            return handler(args)
        except KeyboardInterrupt:
            print("\nInterrupted", file=sys.stderr)
            return 130
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            if e.suggestion:
                print(f"  → {e.suggestion}", file=sys.stderr)
            return 1


def main():
    """Main entry point."""
    cli = ProgConfCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
