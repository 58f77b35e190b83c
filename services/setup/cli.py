"""``crush-setup``: write an offline configuration for the wrapped binary."""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

from services.setup.config_store import build_quick_config, get_config_path, read_config_text, write_config
from services.setup.templates import OFFLINE_ENV_DEFAULTS, PROVIDER_TEMPLATES, get_template

DEFAULT_PROVIDER = "azure-foundry"
DEFAULT_DEPLOYMENT = "gpt-4"

HELP_TEXT = """
Crush Offline Setup

Usage:
  crush-setup quick <type> <endpoint> [deployment]
                           Quick non-interactive setup
  crush-setup show         Show current configuration
  crush-setup env          Print environment variables for shell
  crush-setup help         Show this help

Provider types for quick setup:
  azure-openai    Azure OpenAI Service
  azure-foundry   Azure AI Foundry (recommended)
  openai-compat   Any OpenAI-compatible API
  ollama          Local Ollama instance

Examples:
  crush-setup quick azure-foundry https://my-ai.azure.com/ gpt-4
  crush-setup quick ollama http://localhost:11434/v1/ llama3:70b
"""

QUICK_USAGE = """Usage: crush-setup quick <provider-type> <endpoint> [deployment]

Provider types: {types}

Example:
  crush-setup quick azure-foundry https://my-resource.openai.azure.com/ gpt-4"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crush-setup", add_help=False)
    subparsers = parser.add_subparsers(dest="command")

    quick = subparsers.add_parser("quick", add_help=False)
    quick.add_argument("provider_type", nargs="?", default=DEFAULT_PROVIDER)
    quick.add_argument("endpoint", nargs="?")
    quick.add_argument("deployment", nargs="?", default=DEFAULT_DEPLOYMENT)

    subparsers.add_parser("show", add_help=False)
    subparsers.add_parser("env", add_help=False)
    subparsers.add_parser("help", add_help=False)
    return parser


def quick_setup(
    provider_type: str,
    endpoint: str | None,
    deployment: str | None,
    *,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    types = ", ".join(PROVIDER_TEMPLATES)
    if not endpoint:
        print(QUICK_USAGE.format(types=types), file=stderr)
        return 1

    template = get_template(provider_type)
    if template is None:
        print(f"Unknown provider type: {provider_type}", file=stderr)
        print(f"Valid types: {types}", file=stderr)
        return 1

    config = build_quick_config(template, endpoint, deployment or DEFAULT_DEPLOYMENT)
    path = write_config(config)
    print(f"Configuration saved to: {path}", file=stdout)
    print("", file=stdout)
    print("Required environment variables:", file=stdout)
    for env_var in template.env_vars:
        print(f"  {env_var}", file=stdout)
    return 0


def show_config(*, stdout: TextIO) -> int:
    path = get_config_path()
    text = read_config_text(path)
    if text is None:
        print("No configuration file found.", file=stdout)
        print(f"Expected location: {path}", file=stdout)
        return 0
    print(f"Configuration file: {path}\n", file=stdout)
    print(text, file=stdout)
    return 0


def print_env(*, stdout: TextIO, platform: str | None = None) -> int:
    windows = (platform or sys.platform).startswith("win")
    print("# Crush offline environment variables", file=stdout)
    print("# Add these to your shell profile or run before starting Crush\n", file=stdout)
    if windows:
        print("# PowerShell:", file=stdout)
        for name, value in OFFLINE_ENV_DEFAULTS:
            print(f'$env:{name}="{value}"', file=stdout)
        print("", file=stdout)
        print("# For Azure AI Foundry:", file=stdout)
        print('$env:AZURE_AI_FOUNDRY_API_KEY="your-key-here"', file=stdout)
    else:
        print("# Bash/Zsh:", file=stdout)
        for name, value in OFFLINE_ENV_DEFAULTS:
            print(f"export {name}={value}", file=stdout)
        print("", file=stdout)
        print("# For Azure AI Foundry:", file=stdout)
        print('export AZURE_AI_FOUNDRY_API_KEY="your-key-here"', file=stdout)
    return 0


def main(argv: list[str] | None = None, *, stdout: TextIO | None = None, stderr: TextIO | None = None) -> int:
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args_list = list(argv if argv is not None else sys.argv[1:])

    if not args_list or args_list[0] in {"help", "--help", "-h"}:
        print(HELP_TEXT, file=stdout)
        return 0

    parser = build_parser()
    try:
        args = parser.parse_args(args_list)
    except SystemExit:
        print(HELP_TEXT, file=stderr)
        return 1

    if args.command == "quick":
        return quick_setup(
            args.provider_type, args.endpoint, args.deployment, stdout=stdout, stderr=stderr
        )
    if args.command == "show":
        return show_config(stdout=stdout)
    if args.command == "env":
        return print_env(stdout=stdout)
    print(HELP_TEXT, file=stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
