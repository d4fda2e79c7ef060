# stats.py
import dataclasses
from dataclasses import dataclass


@dataclass
class Statistics:
    """
    Counters accumulated over one simulation run.

    Only the cache's access path mutates these; everything else reads.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    dirty_bytes_resident: int = 0
    dirty_bytes_evicted: int = 0

    @property
    def accesses(self):
        return self.hits + self.misses

    @property
    def hit_rate(self):
        return self.hits / self.accesses if self.accesses else 0.0

    def snapshot(self):
        return dataclasses.replace(self)

    def as_dict(self):
        return dataclasses.asdict(self)
