from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

from .config import LOG_LEVELS, load_settings
from .context import AppContext
from .errors import AuthenticationError, BookingError, NotFoundError, ReservationError
from .logging_config import configure_logging
from .models import Account, Role
from .payments import CreditCardPayment, GCashPayment, PaymentStrategy
from .render import (
    render_accounts,
    render_flight_summary,
    render_flights,
    render_reservations,
    render_waiting_list,
)


PASSWORD_ENV = "AIRLINE_PASSWORD"


def _add_auth_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--user", required=True, help="Username to act as")
    p.add_argument("--password", default=None, help=f"Account password (default: ${PASSWORD_ENV})")


def _login(args: argparse.Namespace, ctx: AppContext, role: Optional[Role] = None) -> Account:
    password = args.password if args.password is not None else os.environ.get(PASSWORD_ENV)
    if password is None:
        raise AuthenticationError(f"a password is required (--password or ${PASSWORD_ENV})")
    return ctx.accounts.login(args.user, password, role=role)


def _payment(args: argparse.Namespace) -> PaymentStrategy:
    if args.payment == "gcash":
        return GCashPayment(args.gcash_number)
    return CreditCardPayment(args.card_number, args.expiry, args.cvv)


def cmd_signup(args: argparse.Namespace, ctx: AppContext) -> int:
    role = Role.admin if args.admin else Role.customer
    account = ctx.accounts.sign_up(args.username, args.password, args.name, role)
    print(f"Signed up {account.username} ({account.role.value}). You can now log in.")
    return 0


def cmd_flights(args: argparse.Namespace, ctx: AppContext) -> int:
    flights = ctx.catalog.search(args.destination) if args.destination else ctx.catalog.list()
    print(render_flights(flights))
    return 0


def cmd_seats(args: argparse.Namespace, ctx: AppContext) -> int:
    flight = ctx.catalog.get(args.flight_id)
    print(render_flight_summary(flight))
    print()
    print(flight.seat_map.render())
    return 0


def cmd_flight_create(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.catalog.create(
        airline=args.airline,
        plane_id=args.plane,
        capacity=args.capacity,
        destination=args.destination,
        departure_time=args.departure,
        arrival_time=args.arrival,
    )
    seat_map = flight.seat_map
    print(f"Flight created: {flight.flight_id}")
    print(f"capacity={flight.info.capacity} rows={seat_map.rows} seats_per_side={seat_map.seats_per_side}")
    return 0


def cmd_flight_update(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.catalog.update(
        args.flight_id,
        airline=args.airline,
        plane_id=args.plane,
        destination=args.destination,
        departure_time=args.departure,
        arrival_time=args.arrival,
        status=args.status,
    )
    info = flight.info
    print(f"Flight {info.flight_id} updated: {info.airline}, {info.departure_time} -> {info.arrival_time}, {info.status}")
    return 0


def cmd_flight_capacity(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.change_capacity(args.flight_id, args.capacity)
    print(f"Flight {flight.flight_id} now has {flight.info.capacity} seats in {flight.seat_map.rows} rows")
    return 0


def cmd_flight_delete(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.delete_flight(args.flight_id)
    print(f"Flight {flight.flight_id} deleted")
    return 0


def cmd_book(args: argparse.Namespace, ctx: AppContext) -> int:
    account = _login(args, ctx, Role.customer)
    passenger = args.passenger or account.name
    flight = ctx.catalog.get(args.flight_id)
    if flight.seat_map.is_fully_booked():
        if not args.waitlist:
            raise BookingError(f"flight {flight.flight_id} is fully booked; pass --waitlist to join the waiting list")
        ctx.join_waitlist(flight.flight_id, account.username, passenger)
        print(f"Flight {flight.flight_id} is fully booked. You have been added to the waiting list.")
        return 0

    reservation = ctx.ledger.book(
        flight.flight_id,
        account.username,
        passenger,
        seat=args.seat,
        payment=_payment(args),
    )
    print("Payment successful! Your flight has been booked.")
    print(f"reservation_id={reservation.reservation_id}")
    print(f"flight_id={reservation.flight_id}")
    print(f"seat={reservation.seat}")
    print(f"payment={reservation.payment}")
    return 0


def cmd_bookings(args: argparse.Namespace, ctx: AppContext) -> int:
    account = _login(args, ctx)
    if account.is_admin:
        if args.flight:
            reservations = ctx.ledger.for_flight(ctx.catalog.get(args.flight).flight_id)
        else:
            reservations = list(ctx.ledger.reservations.values())
    else:
        reservations = ctx.ledger.for_user(account.username)
    print(render_reservations(reservations))
    return 0


def cmd_cancel(args: argparse.Namespace, ctx: AppContext) -> int:
    account = _login(args, ctx)
    owner = None if account.is_admin else account.username
    result = ctx.ledger.cancel(args.reservation_id, username=owner, promote=args.promote)
    print(f"Reservation {result.cancelled.reservation_id} cancelled; seat {result.cancelled.seat} is free")
    if result.promoted is not None:
        p = result.promoted
        print(f"Promoted {p.username} from the waiting list into seat {p.seat} ({p.reservation_id})")
    return 0


def cmd_waitlist(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.catalog.get(args.flight_id)
    print(render_waiting_list(ctx.waitlists.for_flight(flight.flight_id)))
    return 0


def cmd_waitlist_join(args: argparse.Namespace, ctx: AppContext) -> int:
    account = _login(args, ctx, Role.customer)
    entry = ctx.join_waitlist(args.flight_id, account.username, args.passenger or account.name)
    print(f"{entry.passenger_name} added to the waiting list for flight {args.flight_id}")
    return 0


def cmd_waitlist_remove(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    flight = ctx.catalog.get(args.flight_id)
    if not ctx.waitlists.for_flight(flight.flight_id).remove(args.username):
        raise NotFoundError(f"{args.username} is not on the waiting list for flight {flight.flight_id}")
    print(f"Removed {args.username} from the waiting list for flight {flight.flight_id}")
    return 0


def cmd_waitlist_promote(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    reservation = ctx.ledger.promote(args.flight_id, seat=args.seat)
    print(f"Promoted {reservation.username} into seat {reservation.seat} ({reservation.reservation_id})")
    return 0


def cmd_accounts(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    print(render_accounts(ctx.accounts.customers()))
    return 0


def cmd_account_delete(args: argparse.Namespace, ctx: AppContext) -> int:
    _login(args, ctx, Role.admin)
    account = ctx.delete_customer(args.username)
    print(f"Customer account {account.username} deleted")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="airline_reservations", description="Airline reservation system (CLI).")
    p.add_argument("--data-dir", default=None, help="Directory holding the data files (default: $AIRLINE_DATA_DIR or ./data)")
    p.add_argument("--log-level", default=None, choices=LOG_LEVELS, type=str.upper, help="Console log level")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_signup = sub.add_parser("signup", help="Create an account")
    p_signup.add_argument("--username", required=True)
    p_signup.add_argument("--password", required=True)
    p_signup.add_argument("--name", required=True, help="Full name")
    p_signup.add_argument("--admin", action="store_true", help="Create an admin account")
    p_signup.set_defaults(func=cmd_signup)

    p_flights = sub.add_parser("flights", help="List flights")
    p_flights.add_argument("--destination", default=None, help="Substring match on destination")
    p_flights.set_defaults(func=cmd_flights)

    p_seats = sub.add_parser("seats", help="Show a flight's seat map")
    p_seats.add_argument("flight_id")
    p_seats.set_defaults(func=cmd_seats)

    p_create = sub.add_parser("flight-create", help="Admin: create a flight")
    _add_auth_args(p_create)
    p_create.add_argument("--airline", required=True)
    p_create.add_argument("--plane", required=True, help="Plane number/ID")
    p_create.add_argument("--capacity", type=int, required=True)
    p_create.add_argument("--destination", required=True, help='e.g. "Manila to South Africa"')
    p_create.add_argument("--departure", required=True, help='e.g. "May 10, 2025 - 08:00 AM"')
    p_create.add_argument("--arrival", required=True, help='e.g. "May 10, 2025 - 09:30 AM"')
    p_create.set_defaults(func=cmd_flight_create)

    p_update = sub.add_parser("flight-update", help="Admin: edit flight details and status")
    _add_auth_args(p_update)
    p_update.add_argument("flight_id")
    p_update.add_argument("--airline", default=None)
    p_update.add_argument("--plane", default=None)
    p_update.add_argument("--destination", default=None)
    p_update.add_argument("--departure", default=None)
    p_update.add_argument("--arrival", default=None)
    p_update.add_argument("--status", default=None, help='e.g. "Delayed"')
    p_update.set_defaults(func=cmd_flight_update)

    p_capacity = sub.add_parser("flight-capacity", help="Admin: change capacity (flight must have no reservations)")
    _add_auth_args(p_capacity)
    p_capacity.add_argument("flight_id")
    p_capacity.add_argument("--capacity", type=int, required=True)
    p_capacity.set_defaults(func=cmd_flight_capacity)

    p_delete = sub.add_parser("flight-delete", help="Admin: delete a flight with its reservations and waiting list")
    _add_auth_args(p_delete)
    p_delete.add_argument("flight_id")
    p_delete.set_defaults(func=cmd_flight_delete)

    p_book = sub.add_parser("book", help="Customer: book a seat")
    _add_auth_args(p_book)
    p_book.add_argument("flight_id")
    p_book.add_argument("--seat", default=None, help="Seat label, e.g. 1A (default: first available)")
    p_book.add_argument("--passenger", default=None, help="Passenger name (default: account name)")
    p_book.add_argument("--payment", choices=("gcash", "card"), default="gcash")
    p_book.add_argument("--gcash-number", default=None)
    p_book.add_argument("--card-number", default=None)
    p_book.add_argument("--expiry", default=None, help="Card expiry, MM/YY")
    p_book.add_argument("--cvv", default=None)
    p_book.add_argument("--waitlist", action="store_true", help="Join the waiting list if the flight is full")
    p_book.set_defaults(func=cmd_book)

    p_bookings = sub.add_parser("bookings", help="List bookings (own bookings for customers)")
    _add_auth_args(p_bookings)
    p_bookings.add_argument("--flight", default=None, help="Admin: only this flight")
    p_bookings.set_defaults(func=cmd_bookings)

    p_cancel = sub.add_parser("cancel", help="Cancel a booking")
    _add_auth_args(p_cancel)
    p_cancel.add_argument("reservation_id")
    p_cancel.add_argument("--promote", action="store_true", help="Give the freed seat to the next waiting passenger")
    p_cancel.set_defaults(func=cmd_cancel)

    p_wl = sub.add_parser("waitlist", help="Admin: show a flight's waiting list")
    _add_auth_args(p_wl)
    p_wl.add_argument("flight_id")
    p_wl.set_defaults(func=cmd_waitlist)

    p_wl_join = sub.add_parser("waitlist-join", help="Customer: join a full flight's waiting list")
    _add_auth_args(p_wl_join)
    p_wl_join.add_argument("flight_id")
    p_wl_join.add_argument("--passenger", default=None)
    p_wl_join.set_defaults(func=cmd_waitlist_join)

    p_wl_remove = sub.add_parser("waitlist-remove", help="Admin: remove a passenger from a waiting list")
    _add_auth_args(p_wl_remove)
    p_wl_remove.add_argument("flight_id")
    p_wl_remove.add_argument("username")
    p_wl_remove.set_defaults(func=cmd_waitlist_remove)

    p_wl_promote = sub.add_parser("waitlist-promote", help="Admin: seat the next waiting passenger")
    _add_auth_args(p_wl_promote)
    p_wl_promote.add_argument("flight_id")
    p_wl_promote.add_argument("--seat", default=None, help="Seat label (default: first available)")
    p_wl_promote.set_defaults(func=cmd_waitlist_promote)

    p_accounts = sub.add_parser("accounts", help="Admin: list customer accounts")
    _add_auth_args(p_accounts)
    p_accounts.set_defaults(func=cmd_accounts)

    p_acc_delete = sub.add_parser("account-delete", help="Admin: delete a customer with their bookings")
    _add_auth_args(p_acc_delete)
    p_acc_delete.add_argument("username")
    p_acc_delete.set_defaults(func=cmd_account_delete)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        settings = load_settings().override(data_dir=args.data_dir, log_level=args.log_level)
        configure_logging(settings.log_level, settings.log_file)
        ctx = AppContext.from_settings(settings).load()
        rc = int(args.func(args, ctx))
        # Persist only after the command succeeded.
        ctx.save()
        return rc
    except ReservationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
