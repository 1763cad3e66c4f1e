from __future__ import annotations

import argparse
import os
import shlex
import subprocess
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 56471

DEFAULT_CLI_ARGS = [
    "examples/demo_survey/input.json",
    "--out",
    "examples/output/demo_survey.json",
]


def _run(cmd: list[str], *, env: dict[str, str] | None = None) -> int:
    printable = subprocess.list2cmdline(cmd) if os.name == "nt" else shlex.join(cmd)
    print(f"+ {printable}")
    return subprocess.run(cmd, cwd=ROOT_DIR, env=env).returncode


def _python() -> str:
    venv_python = ROOT_DIR / ".venv" / ("Scripts/python.exe" if os.name == "nt" else "bin/python")
    return str(venv_python) if venv_python.exists() else sys.executable


def _passthrough(values: list[str] | None) -> list[str]:
    args = list(values or [])
    return args[1:] if args and args[0] == "--" else args


def cmd_setup(args: argparse.Namespace) -> int:
    if args.venv and not (ROOT_DIR / ".venv").exists():
        code = _run([sys.executable, "-m", "venv", ".venv"])
        if code != 0:
            return code
    return _run([_python(), "-m", "pip", "install", "-e", ".[dev]"])


def cmd_test(args: argparse.Namespace) -> int:
    return _run([_python(), "-m", "pytest", *_passthrough(args.pytest_args)])


def cmd_cli(args: argparse.Namespace) -> int:
    forwarded = _passthrough(args.cli_args) or list(DEFAULT_CLI_ARGS)
    return _run([_python(), "-m", "survey_insights.cli.main", *forwarded])


def cmd_seed(args: argparse.Namespace) -> int:
    return _run([_python(), str(ROOT_DIR / "scripts" / "seed_demo.py")])


def cmd_web(args: argparse.Namespace) -> int:
    if not (ROOT_DIR / "app" / "main.py").exists():
        print("error: app/main.py not found.", file=sys.stderr)
        return 2
    print(f"starting API at http://{args.host}:{args.port}")
    cmd = [_python(), "-m", "uvicorn", "app.main:app", "--host", args.host, "--port", str(args.port)]
    if args.reload:
        cmd.append("--reload")
    return _run(cmd, env=os.environ.copy())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Task runner for Survey Insights.")
    sub = parser.add_subparsers(dest="command", required=True)

    setup_parser = sub.add_parser("setup", help="Install project dependencies.")
    setup_parser.add_argument("--venv", action="store_true", help="Create .venv if missing before install.")
    setup_parser.set_defaults(func=cmd_setup)

    test_parser = sub.add_parser("test", help="Run pytest.")
    test_parser.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Optional pytest args.")
    test_parser.set_defaults(func=cmd_test)

    cli_parser = sub.add_parser("cli", help="Run the survey-insights CLI.")
    cli_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Args forwarded to cli.main.")
    cli_parser.set_defaults(func=cmd_cli)

    seed_parser = sub.add_parser("seed", help="Seed a demo assessment into the configured database.")
    seed_parser.set_defaults(func=cmd_seed)

    web_parser = sub.add_parser("web", help=f"Serve the API with uvicorn on {DEFAULT_HOST}:{DEFAULT_PORT}.")
    web_parser.add_argument("--host", default=DEFAULT_HOST)
    web_parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    web_parser.add_argument("--reload", action="store_true", help="Enable uvicorn auto-reload.")
    web_parser.set_defaults(func=cmd_web)

    return parser


def main() -> int:
    args = build_parser().parse_args()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
