"""
Offline console demo: runs reservation scenarios against in-memory stores.

Uses the real validator, conflict resolver, alternative-date finder,
status state machine and notification queue. No database, no mail
server, no network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario blackout
"""

import argparse
import datetime
from datetime import timedelta
from typing import Optional

from roombook.config import settings
from roombook.reservation_service import OperationResult, ReservationService
from roombook.scheduling.state_machine import Actor
from roombook.schemas.reservation_schema import ReservationRequest
from roombook.tools.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationQueue,
)
from roombook.tools.reservation_store import InMemoryReservationStore
from roombook.tools.settings_store import InMemorySettingsStore
from roombook.utils import format_display_date, local_today

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

SCENARIOS = ("booking", "conflict", "blackout", "availability")


def next_weekday(start: datetime.date, weekday: int = 0) -> datetime.date:
    """First date after ``start`` falling on ``weekday`` (Monday is 0)."""
    days_ahead = (weekday - start.weekday() - 1) % 7 + 1
    return start + timedelta(days=days_ahead)


class ConsoleSession:
    """Drives a ReservationService and narrates what happens."""

    def __init__(self, blackout: Optional[datetime.date] = None) -> None:
        self.sender = LoggingNotificationSender()
        self.reservations = InMemoryReservationStore()
        self.settings_store = InMemorySettingsStore(
            system={"requireApproval": True, "allowOverlapping": True, "maxOverlappingReservations": 2},
            time_slots={
                "businessHours": {
                    name: {
                        "enabled": True,
                        "timeSlots": [
                            {"start": "08:00", "end": "12:00"},
                            {"start": "13:00", "end": "17:00"},
                        ],
                    }
                    for name in ("monday", "tuesday", "wednesday", "thursday", "friday")
                },
                "blackoutDates": (
                    [{"date": blackout.isoformat(), "reason": "Facility maintenance"}]
                    if blackout else []
                ),
                "minDuration": 30,
                "maxDuration": 240,
                "timeSlotInterval": 30,
            },
            email={"sendUserEmails": True, "sendAdminEmails": True},
        )
        self.service = ReservationService(
            self.reservations,
            self.settings_store,
            dispatcher=NotificationDispatcher(NotificationQueue(self.sender)),
        )

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[System]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def request(self, who: str, day: datetime.date, start: str, end: str) -> ReservationRequest:
        print(f"\n{BLUE}[{who}] {RESET}Book {format_display_date(day)} {start}-{end}")
        return ReservationRequest(
            name=who,
            email=f"{who.lower().replace(' ', '.')}@example.com",
            date=day,
            start_time=start,
            end_time=end,
            purpose="Team meeting",
            attendees=8,
            reservation_type="event",
        )

    def report(self, result: OperationResult) -> None:
        colour = GREEN if result.success else RED
        print(f"{colour}  {result.message}{RESET}")
        if result.validation is not None:
            for warning in result.validation.warnings:
                print(f"{YELLOW}  warning: {warning}{RESET}")
            for error in result.validation.errors[1:]:
                print(f"{RED}  error: {error}{RESET}")

    def show_mail(self) -> None:
        for message in self.sender.sent:
            self.system_log(f"mail [{message.kind.value}] -> {', '.join(message.to)}")
        self.sender.sent.clear()

    def banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.system_name.upper()} - {title}{RESET}")
        print(f"{BOLD}  Timezone: {settings.scheduling.timezone}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    def run_booking(self, day: datetime.date) -> None:
        result = self.service.submit_reservation(self.request("Ana Cruz", day, "09:00", "10:30"))
        self.report(result)
        self.show_mail()
        if not result.success:
            return
        self.say("Administrator approves the request")
        self.report(self.service.approve(result.reservation_id))
        self.show_mail()
        self.say("Requester cancels")
        self.report(self.service.cancel(result.reservation_id, Actor.USER, "Meeting moved online"))
        self.show_mail()
        self.say("A second cancel is refused")
        self.report(self.service.cancel(result.reservation_id, Actor.USER))

    def run_conflict(self, day: datetime.date) -> None:
        for who in ("Ana Cruz", "Ben Reyes"):
            result = self.service.submit_reservation(self.request(who, day, "10:00", "11:00"))
            self.report(result)
            if result.success:
                self.service.approve(result.reservation_id)
                self.system_log(f"{result.reservation_id} approved")
        self.show_mail()

        third = self.request("Carla Santos", day, "10:00", "10:30")
        validation = self.service.validate(third)
        for error in validation.errors:
            print(f"{RED}  error: {error}{RESET}")
        self.system_log(
            f"Status: {validation.availability_status.value}, "
            f"worst occupancy {validation.current_occupancy}/"
            f"{validation.max_concurrent_reservations}"
        )
        if validation.detailed_conflict_info is not None:
            alternatives = validation.detailed_conflict_info.recommended_alternatives
            self.say(f"Try instead: {', '.join(alternatives) or 'no nearby dates'}")

    def run_blackout(self, day: datetime.date) -> None:
        result = self.service.submit_reservation(self.request("Ana Cruz", day, "09:00", "10:00"))
        self.report(result)
        alternatives = self.service.find_alternatives(day, "09:00", "10:00", max_suggestions=3)
        options = ", ".join(f"{alt.display_date} ({alt.relative})" for alt in alternatives)
        self.say(f"Nearest open days: {options}")

    def run_availability(self, day: datetime.date) -> None:
        self.service.submit_reservation(self.request("Ana Cruz", day, "08:00", "09:00"))
        for pending in self.reservations.list_reservations():
            self.service.approve(pending.id)
        self.sender.sent.clear()

        for slot in self.service.get_available_slots(day):
            colour = GREEN if slot.available else YELLOW
            print(
                f"{colour}  {slot.time}  {slot.status.value:<11} "
                f"{slot.occupancy}/{slot.max_occupancy}{RESET}"
            )
        week = self.service.get_public_availability(day, day + timedelta(days=6))
        for date, status in sorted(week.days.items()):
            self.system_log(f"{date.isoformat()} {status.value}")
        stats = self.service.reservation_stats()
        self.say(
            f"{stats.total_reservations} reservation(s), "
            f"approval rate {stats.approval_rate:.0f}%"
        )

    def run_scenario(self, scenario: str, day: datetime.date) -> None:
        handler = getattr(self, f"run_{scenario}", None)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self.banner(f"Scenario: {scenario}")
        handler(day)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=SCENARIOS,
        default="booking",
        help="Which pre-scripted scenario to play",
    )
    args = parser.parse_args()

    day = next_weekday(local_today())
    blackout = day if args.scenario == "blackout" else None
    session = ConsoleSession(blackout=blackout)
    session.run_scenario(args.scenario, day)


if __name__ == "__main__":
    main()
