# simulator.py
import logging

from cache import ADDRESS_BITS, AccessKind, Cache, MalformedAccessKind, TraceParseError
from stats import Statistics
from tracefile import format_record

logger = logging.getLogger(__name__)


class Simulator:
    """
    Replays access records against a cache, strictly in input order.

    The simulator owns the Statistics for its run and hands them to the
    cache on every access. A record whose kind is neither load nor store
    aborts the run and the counters gathered so far are thrown away; so
    does an address wider than 64 bits.
    """

    def __init__(self, cache: Cache):
        self.cache = cache
        self.stats = Statistics()

    def step(self, record):
        try:
            kind = AccessKind(record.kind)
        except ValueError:
            raise MalformedAccessKind(f"unknown access kind {record.kind!r}") from None
        if record.address < 0 or record.address >> ADDRESS_BITS:
            raise TraceParseError(f"address {record.address:#x} is not a {ADDRESS_BITS}-bit address")
        tag, set_index, _ = self.cache.decode(record.address)
        outcome, writeback = self.cache.access(set_index, tag, kind, self.stats)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s %s%s", format_record(record), outcome.value,
                         " writeback" if writeback else "")
        return outcome

    def run(self, records):
        """Process every record and return a snapshot of the final counters."""
        try:
            for record in records:
                self.step(record)
        except (MalformedAccessKind, TraceParseError):
            self.stats = Statistics()
            raise
        return self.stats.snapshot()


def simulate(s, E, b, records):
    with Cache(s, E, b) as cache:
        return Simulator(cache).run(records)
