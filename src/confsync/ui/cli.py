from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from confsync.app import (
    InviteScope,
    ModerationScope,
    run_invites,
    run_listener,
    run_permissions,
    run_rebuild,
)
from confsync.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Keep a conference's rooms in line with its schedule"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output, including ignored membership events",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("rebuild", help="Rediscover the conference's rooms and report them")

    invite = subparsers.add_parser("invite", help="Invite the people attached to a room")
    invite.add_argument(
        "scope",
        choices=[scope.value for scope in InviteScope],
        help="Which rooms to invite people to",
    )
    invite.add_argument(
        "entity_id",
        nargs="?",
        help="Auditorium, talk or interest room ID (not used for support rooms)",
    )

    permissions = subparsers.add_parser(
        "permissions",
        help="Grant moderation to the people responsible for a room",
    )
    permissions.add_argument(
        "scope",
        choices=[scope.value for scope in ModerationScope],
        help="Kind of entity the ID refers to",
    )
    permissions.add_argument("entity_id", help="Auditorium, talk or interest room ID")

    subparsers.add_parser("listen", help="Verify e-mail invite redemptions as they happen")

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "rebuild":
            result = run_rebuild()
            for room_id in result.unreadable_rooms:
                log.warning("Could not read room %s", room_id)
        elif parsed_args.command == "invite":
            scope = InviteScope(parsed_args.scope)
            invites = run_invites(scope, parsed_args.entity_id)
            for room_id, invite_result in invites.items():
                log.info(
                    "%s: invited=%s, joined=%s, pending=%s, unreachable=%s, failed=%s",
                    room_id,
                    len(invite_result.invited),
                    len(invite_result.already_joined),
                    len(invite_result.pending),
                    len(invite_result.unreachable),
                    len(invite_result.failed),
                )
        elif parsed_args.command == "permissions":
            scope = ModerationScope(parsed_args.scope)
            grants = run_permissions(scope, parsed_args.entity_id)
            for room_id, permission_result in grants.items():
                log.info(
                    "%s: granted=%s, written=%s",
                    room_id,
                    len(permission_result.granted),
                    permission_result.written,
                )
        elif parsed_args.command == "listen":
            run_listener()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ValueError:
        log.exception("Invalid command")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
