# geodistance/cli.py
import argparse
import json
import logging
import sys

from .config import load_settings, setup_logging
from .errors import ConfigError
from .event import Event
from .filters.geodistance import GeoDistanceFilter

logger = logging.getLogger(__name__)


def read_events(fh):
    for lineno, line in enumerate(fh, 1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except ValueError as e:
            raise SystemExit(f"[ERR] line {lineno}: invalid JSON ({e})")
        if not isinstance(data, dict):
            raise SystemExit(f"[ERR] line {lineno}: expected a JSON object")
        yield Event(data)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Tag NDJSON events whose implied travel speed is too high.")
    ap.add_argument("input", help="NDJSON file with one event per line ('-' for stdin)")
    ap.add_argument("-o", "--output", default="-", help="where to write the events (default stdout)")
    ap.add_argument("--workers", type=int, default=4, help="concurrent lookups (default 4)")
    args = ap.parse_args(argv)

    try:
        settings = load_settings()
        setup_logging(settings.LOG_LEVEL)
        flt = GeoDistanceFilter(settings).register()
    except ConfigError as e:
        print(f"[ERR] {e}", file=sys.stderr)
        return 2

    fin = sys.stdin if args.input == "-" else open(args.input, "r", encoding="utf-8")
    try:
        events = list(read_events(fin))
    finally:
        if fin is not sys.stdin:
            fin.close()

    try:
        results = flt.filter_many(events, workers=args.workers)
    finally:
        flt.close()

    fout = sys.stdout if args.output == "-" else open(args.output, "w", encoding="utf-8")
    try:
        for ev in events:
            fout.write(json.dumps(ev.to_dict()) + "\n")
    finally:
        if fout is not sys.stdout:
            fout.close()

    tagged = sum(1 for r in results if r.status == "tagged")
    failed = sum(1 for r in results if r.status == "failed")
    logger.info("processed %d events: %d tagged, %d failed", len(events), tagged, failed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
