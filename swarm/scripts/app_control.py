#!/usr/bin/env python3
"""
app_control.py - CLI tool to control a running SWARM application via config.json

Usage:
    python -m swarm.scripts.app_control --pause true
    python -m swarm.scripts.app_control --exit true
    python -m swarm.scripts.app_control --config /path/to/config.json --pause false
    python -m swarm.scripts.app_control --status

The running application polls the config file's mtime and picks up
app_control.pause (freeze the swarm) and app_control.exit (stop) on its own.
"""

import argparse
import json
import sys
from typing import Optional, Tuple

from swarm.config.config_manager import DEFAULT_CONFIG_PATH


PAUSE_DESCRIPTION = "Set to true to freeze the swarm (hot-reloaded)"
EXIT_DESCRIPTION = "Set to true to gracefully exit the application (hot-reloaded)"


def str_to_bool(value: str) -> bool:
    """Convert string to boolean."""
    if value.lower() in ('true', '1', 'yes', 'on'):
        return True
    elif value.lower() in ('false', '0', 'no', 'off'):
        return False
    else:
        raise ValueError(f"Invalid boolean value: {value}")


def _unwrap(entry, default=False):
    if isinstance(entry, list):
        return entry[0] if entry else default
    return default if entry is None else entry


def _set_flag(section: dict, name: str, value: bool, description: str):
    entry = section.get(name)
    if isinstance(entry, list) and len(entry) >= 2:
        section[name] = [value, entry[1]]
    else:
        section[name] = [value, description]


def read_flags(config_path: str) -> Tuple[bool, bool]:
    """Return (pause, exit) from the config file."""
    with open(config_path, 'r') as f:
        data = json.load(f)
    app_control = data.get('app_control', {})
    return _unwrap(app_control.get('pause')), _unwrap(app_control.get('exit'))


def update_config(config_path: str, exit_val: Optional[bool] = None, pause_val: Optional[bool] = None) -> bool:
    """
    Update the app_control fields in config.json.

    Args:
        config_path: Path to config.json
        exit_val: Value for app_control.exit (None = don't change)
        pause_val: Value for app_control.pause (None = don't change)

    Returns:
        True if successful, False otherwise
    """
    try:
        with open(config_path, 'r') as f:
            data = json.load(f)

        section = data.setdefault('app_control', {})

        if exit_val is not None:
            _set_flag(section, 'exit', exit_val, EXIT_DESCRIPTION)
            print(f"✓ Set app_control.exit = {exit_val}")

        if pause_val is not None:
            _set_flag(section, 'pause', pause_val, PAUSE_DESCRIPTION)
            print(f"✓ Set app_control.pause = {pause_val}")

        with open(config_path, 'w') as f:
            json.dump(data, f, indent=2)

        print(f"✓ Config saved to {config_path}")
        return True

    except FileNotFoundError:
        print(f"✗ Config file not found: {config_path}", file=sys.stderr)
        return False
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON in config file: {e}", file=sys.stderr)
        return False
    except OSError as e:
        print(f"✗ Error updating config: {e}", file=sys.stderr)
        return False


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Control a running SWARM application via config.json",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
python -m swarm.scripts.app_control --pause true     # Freeze the swarm
python -m swarm.scripts.app_control --pause false    # Resume
python -m swarm.scripts.app_control --exit true      # Signal app to exit
python -m swarm.scripts.app_control --status         # Show current values
        """
    )
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Path to config.json (default: bundled config)')
    parser.add_argument('--exit', '-e', type=str, default=None, metavar='BOOL',
                        help='Set app_control.exit (true/false)')
    parser.add_argument('--pause', '-p', type=str, default=None, metavar='BOOL',
                        help='Set app_control.pause (true/false)')
    parser.add_argument('--status', '-s', action='store_true',
                        help='Show current app_control values')

    args = parser.parse_args(argv)
    config_path = args.config if args.config else str(DEFAULT_CONFIG_PATH)

    if args.status:
        try:
            pause, exit_val = read_flags(config_path)
        except (OSError, json.JSONDecodeError) as e:
            print(f"✗ Error reading config: {e}", file=sys.stderr)
            return 1
        print(f"Config: {config_path}")
        print(f"  app_control.pause = {pause}")
        print(f"  app_control.exit  = {exit_val}")
        return 0

    if args.exit is None and args.pause is None:
        parser.print_help()
        print("\nError: At least one of --exit or --pause must be specified", file=sys.stderr)
        return 1

    try:
        exit_val = str_to_bool(args.exit) if args.exit is not None else None
        pause_val = str_to_bool(args.pause) if args.pause is not None else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0 if update_config(config_path, exit_val=exit_val, pause_val=pause_val) else 1


if __name__ == "__main__":
    sys.exit(main())
