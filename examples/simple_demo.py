#!/usr/bin/env python3
"""
Simple demo of the flightlog reader.

Streams a log event by event, then collects it into columns.

Usage:
    python examples/simple_demo.py path/to/flight.ulg
"""

import sys
from collections import Counter

from flightlog import DataEvent, ErrorEvent, collect, open_log
from flightlog.core.log import LoggedStringEvent
from flightlog.utils.config import Config, ReaderConfig
from flightlog.utils.logging import configure_logging_from_config


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    
    path = sys.argv[1]
    # Loggers routinely leave out the final padding field of a record.
    config = Config(
        overrides={
            "reader": {"accept_omitted_trailing_padding": True},
            "logging": {"level": "WARNING"},
        }
    )
    configure_logging_from_config(config)
    reader_config = ReaderConfig.from_config(config)
    
    print("=" * 60)
    print("flightlog - Simple Reader Demo")
    print("=" * 60)
    
    print("\n[1] Streaming events...")
    counts = Counter()
    with open_log(path, reader_config) as reader:
        print(f"  version={reader.header.version}, start={reader.header.timestamp} us")
        for event in reader:
            counts[type(event).__name__] += 1
            if isinstance(event, LoggedStringEvent):
                print(f"  [{event.level_name}] {event.timestamp}: {event.text}")
            elif isinstance(event, ErrorEvent):
                print(f"  skipped {event.tag!r} frame: {event.error}")
    
    for name, count in counts.most_common():
        print(f"  {name}: {count}")
    
    print("\n[2] Collecting columns...")
    result = collect(path, reader_config)
    for (name, multi_id), dataset in sorted(result.datasets.items()):
        print(f"  {name}[{multi_id}]: {len(dataset)} records, {len(dataset.columns)} columns")
    
    print("\n[3] First record of every topic...")
    seen = set()
    with open_log(path, reader_config) as reader:
        for event in reader:
            if isinstance(event, DataEvent) and event.format_name not in seen:
                seen.add(event.format_name)
                print(f"  {event.format_name}: {dict(event.flatten())}")


if __name__ == "__main__":
    main()
