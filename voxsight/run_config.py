from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Sequence, Set

from .errors import ConfigError


def load_run_config(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Run config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid run config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Run config must be a JSON object")
    return payload


def collect_cli_dests(parser: argparse.ArgumentParser, argv: Sequence[str]) -> Set[str]:
    """
    Destinations explicitly set on the command line; those win over the run config.
    """

    dests: Set[str] = set()
    for opt, action in parser._option_string_actions.items():
        for arg in argv:
            if arg == opt or arg.startswith(f"{opt}="):
                dests.add(action.dest)
                break
    return dests


def apply_run_config(
    *,
    args: argparse.Namespace,
    payload: Dict[str, object],
    cli_dests: Set[str],
    parser: argparse.ArgumentParser,
) -> None:
    """
    Copy run-config values onto `args` for every option not given on the command line.

    Value types follow the parser: flags take booleans, `type=int`/`type=float`
    options take numbers, everything else takes non-empty strings.
    """

    actions = {action.dest: action for action in parser._actions if action.dest != "help"}
    if "config" in payload:
        raise ConfigError("run config must not include the 'config' key")
    unknown = sorted(k for k in payload.keys() if k not in actions)
    if unknown:
        raise ConfigError(f"Unknown run config keys: {unknown}")

    for key, value in payload.items():
        if key in cli_dests or value is None:
            continue
        action = actions[key]

        if isinstance(action, (argparse._StoreTrueAction, argparse._StoreFalseAction)):
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be a boolean")
            setattr(args, key, value)
        elif action.type is int:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{key} must be an integer")
            if isinstance(value, float) and not value.is_integer():
                raise ConfigError(f"{key} must be an integer")
            setattr(args, key, int(value))
        elif action.type is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{key} must be a number")
            setattr(args, key, float(value))
        else:
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{key} must be a non-empty string")
            if action.choices is not None and value not in action.choices:
                raise ConfigError(f"{key} must be one of {sorted(action.choices)}")
            setattr(args, key, value)
