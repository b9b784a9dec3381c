#!/usr/bin/env python3
"""CLI for the pipeline board. Usage: pipe <command> [args]"""

import os
import sys

from pipeline_client import tool


def _parse_flags(args: list[str], flags: dict[str, type]) -> tuple[dict, list[str]]:
    """Parse --flag=value args. Returns (parsed_flags, remaining_args)."""
    parsed = {}
    remaining = []
    for arg in args:
        if arg.startswith("--") and "=" in arg:
            key, val = arg.split("=", 1)
            key = key[2:]  # strip --
            if key in flags:
                parsed[key] = flags[key](val)
            else:
                remaining.append(arg)
        elif arg.startswith("--"):
            key = arg[2:]
            if key in flags and flags[key] is bool:
                parsed[key] = True
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)
    return parsed, remaining


HELP = """Usage: pipe <command> [args] [--user=<id>]

The recruiter defaults to $PIPELINE_USER.

Status:
  status                      Server health check

Board:
  board                       Show columns and cards
  apps                        List applications
  add <applicant> <posting>   Create application [--match=N]

Moves:
  move <id> <stage>           Move to a stage [--note=...]
  advance <id>                Move to the next stage
  reject <id>                 Move to Rejected

Settings:
  settings                    Show theme and transparency
  settings set <k> <v>        Set theme|url|transparency

Stages:
  stages                      List stages
  stages add <name> [color]   Add custom stage
  stages rename <id> <name>   Rename stage
  stages color <id> <color>   Recolour stage
  stages remove <id>          Remove custom stage (apps move to New)
"""

SETTINGS_KEYS = {
    "theme": "background_theme",
    "url": "custom_background_url",
    "transparency": "column_transparency",
}


def main():
    args = sys.argv[1:]
    if not args or args[0] in ("-h", "--help", "help"):
        print(HELP.strip())
        return

    flags, args = _parse_flags(args, {"user": str, "note": str, "match": int})
    if not args:
        print(HELP.strip())
        return
    user_id = flags.get("user") or os.environ.get("PIPELINE_USER")
    cmd = args[0]
    rest = args[1:]

    needs_user = cmd in ("board", "move", "advance", "reject", "settings", "stages")
    if needs_user and not user_id:
        print("ERROR: no recruiter id (pass --user=<id> or set PIPELINE_USER)")
        return

    if cmd == "status":
        print(tool.status())

    elif cmd == "board":
        print(tool.get_board(user_id))

    elif cmd == "apps":
        print(tool.get_applications(user_id=user_id))

    elif cmd == "add":
        if len(rest) < 2:
            print("Usage: pipe add <applicant_id> <posting_id> [--match=N]")
            return
        print(tool.create_application(rest[0], rest[1], match_score=flags.get("match")))

    elif cmd == "move":
        if len(rest) < 2:
            print("Usage: pipe move <id> <stage> [--note=...]")
            return
        print(tool.update_status(rest[0], rest[1], user_id=user_id, note=flags.get("note")))

    elif cmd == "advance":
        if not rest:
            print("Usage: pipe advance <id>")
            return
        print(tool.advance(rest[0], user_id=user_id))

    elif cmd == "reject":
        if not rest:
            print("Usage: pipe reject <id>")
            return
        print(tool.reject(rest[0], user_id=user_id))

    elif cmd == "settings":
        if not rest:
            print(tool.get_settings(user_id))
        elif rest[0] == "set" and len(rest) >= 3 and rest[1] in SETTINGS_KEYS:
            key = SETTINGS_KEYS[rest[1]]
            value = rest[2]
            if key == "column_transparency":
                if not value.isdigit():
                    print("ERROR: transparency must be 0-100")
                    return
                value = int(value)
            print(tool.update_settings(user_id, **{key: value}))
        else:
            print("Usage: pipe settings [set <theme|url|transparency> <value>]")

    elif cmd == "stages":
        if not rest:
            print(tool.get_stages(user_id))
        elif rest[0] == "add" and len(rest) >= 2:
            color = rest[2] if len(rest) >= 3 else "gray"
            print(tool.add_stage(user_id, rest[1], color=color))
        elif rest[0] == "rename" and len(rest) >= 3:
            print(tool.update_stage(user_id, rest[1], name=" ".join(rest[2:])))
        elif rest[0] == "color" and len(rest) >= 3:
            print(tool.update_stage(user_id, rest[1], color=rest[2]))
        elif rest[0] == "remove" and len(rest) >= 2:
            print(tool.remove_stage(user_id, rest[1]))
        else:
            print("Usage: pipe stages [add <name> [color] | rename <id> <name> | color <id> <color> | remove <id>]")

    else:
        print(f"Unknown command: {cmd}\n")
        print(HELP.strip())


if __name__ == "__main__":
    main()
