from __future__ import annotations

import asyncio
import logging
import sys
from argparse import ArgumentParser
from typing import TYPE_CHECKING

from ._errors import InvalidVersionError, ProvisionError
from ._log import setup_report
from ._provision import PythonProvisioner

if TYPE_CHECKING:
    from argparse import Namespace
    from collections.abc import Sequence

LOGGER = logging.getLogger(__name__)
DEFAULT_VERBOSITY = 2


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="py-provision", description="find, and if needed install, a Python interpreter")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0, help="increase verbosity")
    verbosity.add_argument("-q", "--quiet", action="count", default=0, help="decrease verbosity")
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="print the executable a launch command starts")
    resolve.add_argument("launcher", nargs="?", default="python", help="command to run, e.g. 'py -3'")

    locate = commands.add_parser("locate", help="print the path of an installed interpreter")
    locate.add_argument("version", help="<major>.<minor>")

    ensure = commands.add_parser("ensure", help="locate, installing when missing")
    ensure.add_argument("version", help="<major>.<minor>")
    ensure.add_argument(
        "--no-install",
        dest="install",
        action="store_false",
        default=None,
        help="fail instead of installing a missing interpreter",
    )

    install = commands.add_parser("install", help="install with the native package manager")
    install.add_argument("version", help="<major>.<minor>")
    return parser


async def execute(options: Namespace, provisioner: PythonProvisioner) -> str | None:
    if options.command == "resolve":
        return await provisioner.resolve_path(options.launcher)
    if options.command == "locate":
        return await provisioner.locate(options.version)
    if options.command == "ensure":
        return await provisioner.ensure_installed(options.version, options.install)
    await provisioner.install(options.version)
    return None


def main(args: Sequence[str] | None = None, provisioner: PythonProvisioner | None = None) -> int:
    options = build_parser().parse_args(args)
    setup_report(DEFAULT_VERBOSITY + options.verbose - options.quiet)
    try:
        provisioner = PythonProvisioner() if provisioner is None else provisioner
        result = asyncio.run(execute(options, provisioner))
    except InvalidVersionError as exception:
        LOGGER.error("%s", exception)  # noqa: TRY400
        return 2
    except (ProvisionError, ValueError) as exception:
        LOGGER.error("%s", exception)  # noqa: TRY400
        return 1
    if options.command == "locate" and result is None:
        LOGGER.error("Python %s not found.", options.version)
        return 1
    if result is not None:
        print(result)  # noqa: T201
    return 0


def run(args: Sequence[str] | None = None) -> None:
    raise SystemExit(main(args))


if __name__ == "__main__":
    run()
