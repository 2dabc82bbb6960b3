"""
Offline studio console: drives the scheduling engine from the terminal.

Uses the real pricing calculator, availability index, cancellation policy
and in-memory repositories. No database, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario conflict
"""

import argparse
import shlex
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from inkbook.config import settings
from inkbook.errors import SchedulingError
from inkbook.logging_context import set_request_id
from inkbook.scheduling.engine import SchedulingEngine
from inkbook.scheduling.notifications import NotificationEvent
from inkbook.schemas.resource_schema import Resource, weekly_hours

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_ARTIST = "artist-1"

HELP_TEXT = """Commands:
  quote <size> <placement> <complexity>
  book <customer> <YYYY-MM-DD> <HH:MM> <HH:MM> <size> <placement> <complexity>
  slots <YYYY-MM-DD> <minutes>
  confirm <appointment-id>
  cancel <appointment-id> [reason]
  move <appointment-id> <YYYY-MM-DD> <HH:MM> <HH:MM>
  list
  catalog
  quit"""


def next_weekday(weekday: int, today: Optional[date] = None) -> date:
    """The next date strictly after today falling on the given weekday."""
    today = today or datetime.now(timezone.utc).date()
    days_ahead = (weekday - today.weekday() - 1) % 7 + 1
    return today + timedelta(days=days_ahead)


def _at(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, time.fromisoformat(hhmm), tzinfo=timezone.utc)


class ConsoleNotifier:
    """Prints notifications the way an email/SMS gateway would receive them."""

    def notify(self, event: NotificationEvent) -> None:
        print(f"{DIM}  >> notify {event.type.value} {event.appointment_id}{RESET}")


class ConsoleSession:
    """Interactive front desk over a single in-memory engine."""

    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "quote medium arm 3",
            "book cust-1 {monday} 10:00 11:30 medium arm 3",
            "slots {monday} 60",
            "list",
        ],
        "conflict": [
            "book cust-1 {monday} 10:00 11:30 medium arm 3",
            "book cust-2 {monday} 11:00 12:00 small wrist 2",
            "cancel {last} schedule_change",
            "book cust-2 {monday} 11:00 12:00 small wrist 2",
            "list",
        ],
    }

    def __init__(self) -> None:
        self.engine = SchedulingEngine(notifier=ConsoleNotifier()).start()
        self.engine.register_resource(
            Resource(
                id=DEMO_ARTIST,
                name="Demo Artist",
                working_hours=weekly_hours([0, 1, 2, 3, 4, 5], "09:00", "17:00"),
            )
        )
        self.monday = next_weekday(0)
        self._last_id: Optional[str] = None
        self._running = True

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.studio.name}]{RESET} {GREEN}{text}{RESET}")

    def warn(self, text: str) -> None:
        print(f"{RED}{text}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        for line in self.SCENARIOS[scenario]:
            line = line.format(monday=self.monday.isoformat(), last=self._last_id or "")
            print(f"\n{BLUE}{BOLD}> {line}{RESET}")
            self.handle(line)
        self.engine.close()

    def run(self) -> None:
        print(f"{BOLD}{settings.studio.name} - booking console{RESET}")
        print(HELP_TEXT)
        while self._running:
            try:
                line = input(f"{BLUE}> {RESET}").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if line:
                self.handle(line)
        self.engine.close()

    def handle(self, line: str) -> None:
        parts = shlex.split(line)
        command, args = parts[0].lower(), parts[1:]
        set_request_id(f"REQ-{uuid.uuid4().hex[:8]}")
        handler = getattr(self, f"_cmd_{command}", None)
        if handler is None:
            self.warn(f"Unknown command '{command}'. Type 'help'.")
            return
        try:
            handler(*args)
        except SchedulingError as exc:
            self.warn(f"{exc.code}: {exc}")
        except (TypeError, ValueError) as exc:
            self.warn(f"Bad input: {exc}")

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def _cmd_help(self) -> None:
        print(HELP_TEXT)

    def _cmd_quit(self) -> None:
        self._running = False

    def _cmd_catalog(self) -> None:
        catalog = self.engine.pricing.catalog()
        self.say("Sizes: " + ", ".join(s["id"] for s in catalog["sizes"]))
        self.say("Placements: " + ", ".join(p["id"] for p in catalog["placements"]))

    def _cmd_quote(self, size: str, placement: str, complexity: str) -> None:
        est = self.engine.quote(size, placement, int(complexity), DEMO_ARTIST)
        note = f" (complexity clamped to {est.complexity_level})" if est.complexity_clamped else ""
        self.say(
            f"{est.size} on {est.placement}: ~{est.estimated_hours}h, "
            f"${est.total_price} total, ${est.deposit_amount} deposit{note}"
        )

    def _cmd_book(
        self, customer: str, day: str, start: str, end: str,
        size: str, placement: str, complexity: str,
    ) -> None:
        d = date.fromisoformat(day)
        appt = self.engine.create(
            DEMO_ARTIST, customer, _at(d, start), _at(d, end), size, placement, int(complexity)
        )
        self._last_id = appt.id
        self.say(f"Booked {appt.id}: ${appt.price}, deposit ${appt.deposit_amount}")

    def _cmd_slots(self, day: str, minutes: str) -> None:
        slots = self.engine.open_slots(DEMO_ARTIST, date.fromisoformat(day), int(minutes))
        if not slots:
            self.say("No open slots that day.")
            return
        self.say("Open: " + ", ".join(f"{s:%H:%M}-{e:%H:%M}" for s, e in slots))

    def _cmd_confirm(self, appointment_id: str) -> None:
        appt = self.engine.confirm(appointment_id)
        self.say(f"{appt.id} is now {appt.status.value}")

    def _cmd_cancel(self, appointment_id: str, reason: Optional[str] = None) -> None:
        outcome = self.engine.cancel(appointment_id, reason_code=reason)
        refund = "refundable" if outcome.deposit_refundable else "kept"
        self.say(
            f"Cancelled {appointment_id}: fee ${outcome.fee_amount} "
            f"({outcome.fee_percentage * 100:.0f}%), deposit {refund}"
        )

    def _cmd_move(self, appointment_id: str, day: str, start: str, end: str) -> None:
        d = date.fromisoformat(day)
        appt = self.engine.reschedule(appointment_id, _at(d, start), _at(d, end))
        self.say(f"{appt.id} moved to {appt.start_time:%Y-%m-%d %H:%M}")

    def _cmd_list(self) -> None:
        rows = self.engine.list_for_resource(DEMO_ARTIST)
        if not rows:
            self.say("No appointments.")
        for a in rows:
            print(
                f"  {YELLOW}{a.id}{RESET} {a.start_time:%Y-%m-%d %H:%M}-{a.end_time:%H:%M} "
                f"{a.customer_id} {a.status.value} ${a.price}"
            )


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline studio booking console")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
