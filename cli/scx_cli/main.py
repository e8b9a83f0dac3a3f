"""Main entry point for the scx CLI."""

from __future__ import annotations

import sys

from scx_cli import __version__
from scx_cli.auth import login, logout, save_token, set_endpoint, whoami
from scx_cli.config import Config

COMMANDS = ("login", "logout", "token", "endpoint", "whoami")


def print_help():
    """Print help message."""
    print(f"""
scx v{__version__} - Supacortex from the terminal

Usage:
  scx [options] <command>

Commands:
  login               Authenticate via browser
  logout              Remove saved API key
  token <apikey>      Save an API key created in the web app
  endpoint [url]      Show, set, or reset ("reset") the API endpoint
  whoami              Show current configuration and account

Options:
  --app-url URL       Override web app URL (default: https://supacortex.ai)
  -h, --help          Show this help
  -v, --version       Show version

Environment:
  SCX_APP_URL         Override web app URL (same as --app-url)
""")


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        command: str | None
        argument: str | None (positional argument for token/endpoint)
        app_url: str | None
        show_help: bool
        show_version: bool
        error: str | None
    """
    result = {
        "command": None,
        "argument": None,
        "app_url": None,
        "show_help": False,
        "show_version": False,
        "error": None,
    }

    i = 0
    while i < len(args):
        arg = args[i]

        if arg == "--app-url":
            if i + 1 < len(args):
                result["app_url"] = args[i + 1]
                i += 1
            else:
                result["error"] = "--app-url requires a URL"
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        elif arg.startswith("-"):
            result["error"] = f"Unknown option: {arg}"
        elif result["command"] is None:
            if arg in COMMANDS:
                result["command"] = arg
            else:
                result["error"] = f"Unknown command: {arg}"
        elif result["command"] in ("token", "endpoint") and result["argument"] is None:
            result["argument"] = arg
        else:
            result["error"] = f"Unexpected argument: {arg}"

        if result["error"]:
            break
        i += 1

    return result


def run(argv: list[str]) -> int:
    """Run the CLI and return an exit code."""
    args = parse_args(argv)

    if args["error"]:
        print(f"Error: {args['error']}")
        print("Run 'scx --help' for usage.")
        return 1

    if args["show_help"] or (args["command"] is None and not args["show_version"]):
        print_help()
        return 0

    if args["show_version"]:
        print(f"scx {__version__}")
        return 0

    config = Config(app_url_override=args["app_url"])
    command = args["command"]

    if command == "login":
        success = login(config)
    elif command == "logout":
        success = logout(config)
    elif command == "token":
        if not args["argument"]:
            print("Error: token requires an API key")
            return 1
        success = save_token(config, args["argument"])
    elif command == "endpoint":
        success = set_endpoint(config, args["argument"])
    else:
        success = whoami(config)

    return 0 if success else 1


def main():
    """Main entry point."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
