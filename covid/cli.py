"""
covid Command Line Interface (CLI)
==================================

Interactive terminal program over the case-count feeds, run like:

    python -m covid.cli --deaths deaths.csv --confirmed confirmed.csv \
        --daily-country today_countries.csv --daily-state today_states.csv

It loads the feeds once into a `SnapshotStore` and answers queries from an
in-memory snapshot. `reload` re-reads the files and publishes a new snapshot;
if that fails the previous one stays live.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import argparse
import logging
import shlex

from .engine import SnapshotStore, refresh
from .loader import FeedSet
from .models import Datum, Series

HELP = """
Commands:
  help
  stats
  countries
  provinces "<Country>"
  periods
  show "<Country>" ["<Province>"] [days]
  date "<Country>" "<Province>" <deaths|confirmed> <YYYY-MM-DD>
  top <k>
  export <csv|json> "<path>" "<Country>" ["<Province>"]
  reload
  quit

Use "" as the country for Global and as the province for country totals.
"""


@dataclass
class Session:
    """The store plus the feed files it was loaded from (for reload)."""
    store: SnapshotStore
    deaths: str
    confirmed: str
    daily_country: Optional[str] = None
    daily_state: Optional[str] = None

    def feeds(self) -> FeedSet:
        return FeedSet.from_paths(self.deaths, self.confirmed, self.daily_country, self.daily_state)

    def load(self) -> int:
        return len(refresh(self.store, self.feeds()))


def main(argv=None):
    """Entry point for the covid CLI.

    1) Load feeds into a store
    2) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(description="Query case-count CSV feeds")
    ap.add_argument("--deaths", required=True, help="Path to time series deaths csv")
    ap.add_argument("--confirmed", required=True, help="Path to time series confirmed csv")
    ap.add_argument("--daily-country", help="Path to today's per-country csv")
    ap.add_argument("--daily-state", help="Path to today's per-state csv")
    ap.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s - %(levelname)s - %(message)s")

    session = Session(store=SnapshotStore(), deaths=args.deaths, confirmed=args.confirmed,
                      daily_country=args.daily_country, daily_state=args.daily_state)
    print("Loading feeds...")
    n = session.load()
    print(f"Loaded {n} series. Type 'help' for commands.")

    while True:
        try:
            line = input("covid> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            break
        try:
            handle(session, line)
        except Exception as e:
            print(f"Error: {e}")


def handle(session: Session, line: str) -> None:
    """Handle one CLI command line."""
    store = session.store
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "stats":
        data = store.get()
        countries = sum(1 for s in data if s.province == "" and s.country != "")
        provinces = sum(1 for s in data if s.province != "")
        print(f"Series: {len(data)} | Countries: {countries} | Provinces: {provinces}")
        if store.published_at is not None:
            print(f"Published at {store.published_at:%Y-%m-%d %H:%M:%S %Z}")
        return

    if cmd == "countries":
        _print_options(store.country_options())
        return

    if cmd == "provinces":
        if len(parts) < 2:
            raise ValueError('usage: provinces "<Country>"')
        _print_options(store.province_options(parts[1]))
        return

    if cmd == "periods":
        _print_options(store.period_options())
        return

    if cmd == "show":
        if len(parts) < 2:
            raise ValueError('usage: show "<Country>" ["<Province>"] [days]')
        country = parts[1]
        province = ""
        days = 0
        rest = parts[2:]
        if rest and not rest[-1].isdigit():
            province = rest.pop(0)
        elif len(rest) == 2:
            province = rest.pop(0)
        if rest:
            days = int(rest[0])
        s = store.fetch_series(country, province)
        if days > 0:
            s = s.days(days)
        _print_series(s)
        return

    if cmd == "date":
        if len(parts) < 5:
            raise ValueError('usage: date "<Country>" "<Province>" <deaths|confirmed> <YYYY-MM-DD>')
        datum = Datum.parse(parts[3])
        when = datetime.strptime(parts[4], "%Y-%m-%d").date()
        v = store.fetch_date(parts[1], parts[2], datum, when)
        print(f"{datum.value} on {when.isoformat()}: {v}")
        return

    if cmd == "top":
        k = int(parts[1]) if len(parts) >= 2 else 10
        for s in store.top(k):
            print(f"{s.title()} | deaths={s.deaths_display()} confirmed={s.confirmed_display()}")
        return

    if cmd == "export":
        # export <csv|json> "<path>" "<Country>" ["<Province>"]
        if len(parts) < 4:
            print('Usage: export csv "out.csv" "<Country>"  OR  export json "out.json" "<Country>"')
            return
        fmt = parts[1].lower()
        out_path = parts[2]
        province = parts[4] if len(parts) >= 5 else ""
        df = store.fetch_series(parts[3], province).to_frame().reset_index()
        if fmt == "csv":
            df.to_csv(out_path, index=False)
            print(f"Exported CSV to {out_path}")
            return
        if fmt == "json":
            df.to_json(out_path, orient="records", date_format="iso", indent=2)
            print(f"Exported JSON to {out_path}")
            return
        print("Unknown export format. Use: csv or json")
        return

    if cmd == "reload":
        n = session.load()
        print(f"Reloaded {n} series.")
        return

    print("Unknown command. Type 'help'.")


def _print_options(options):
    for o in options:
        print(f"{o.value!r:>28} {o.name}")


def _print_series(s: Series) -> None:
    print(f"{s.title()} | deaths={s.deaths_display()} (+{s.deaths_today()} today) "
          f"confirmed={s.confirmed_display()} (+{s.confirmed_today()} today)")
    if s.updated_at_display():
        print(s.updated_at_display())
    for label, d, c in zip(s.dates()[-14:], s.deaths[-14:], s.confirmed[-14:]):
        print(f"  {label:>7} deaths={d} confirmed={c}")


if __name__ == "__main__":
    main()
