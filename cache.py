# cache.py
import enum
from collections import namedtuple

# trace addresses are unsigned 64-bit values
ADDRESS_BITS = 64


class CacheSimError(Exception):
    """Base class for every error raised by the simulator."""


class InvalidGeometry(CacheSimError, ValueError):
    pass


class AllocationFailure(CacheSimError, MemoryError):
    pass


class MalformedAccessKind(CacheSimError, ValueError):
    pass


class TraceParseError(CacheSimError, ValueError):
    pass


class CacheTornDown(CacheSimError):
    pass


class AccessKind(str, enum.Enum):
    LOAD = "L"
    STORE = "S"


class AccessOutcome(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    MISS_EVICT = "miss eviction"


DecodedAddress = namedtuple("DecodedAddress", ["tag", "set_index", "block_offset"])

# Immutable snapshot of one slot; the live state sits in the Cache arrays.
CacheLine = namedtuple("CacheLine", ["valid", "dirty", "tag", "recency"])


def decode_address(address, s, b):
    """
    Split `address` into (tag, set index, block offset) for a cache
    with 2^s sets and 2^b byte blocks.
    """
    block_offset = address & ((1 << b) - 1)
    set_index = (address >> b) & ((1 << s) - 1)
    tag = address >> (s + b)
    return DecodedAddress(tag, set_index, block_offset)


class Cache:
    """
    Set-associative, write-back/write-allocate cache with LRU replacement.

    Line state lives in four flat lists of 2^s * E entries; the lines
    of set i occupy indices [i * E, (i + 1) * E). A line's recency is 0
    right after it is touched and grows by one on every other access to
    its set, so the LRU victim is the line with the largest recency.
    Ties go to the lowest way index.
    """

    def __init__(self, s, E, b):
        if s < 0 or b < 0 or E < 1:
            raise InvalidGeometry(f"invalid cache geometry s={s} E={E} b={b}")
        self.s = s
        self.E = E
        self.b = b
        self.num_sets = 1 << s
        self.block_size = 1 << b
        num_lines = self.num_sets * E
        try:
            valid = [False] * num_lines
            dirty = [False] * num_lines
            tags = [0] * num_lines
            recency = [0] * num_lines
        except (MemoryError, OverflowError) as exc:
            raise AllocationFailure(
                f"cannot allocate {num_lines} cache lines for s={s} E={E} b={b}"
            ) from exc
        # assigned only once every list exists
        self._valid = valid
        self._dirty = dirty
        self._tags = tags
        self._recency = recency

    @property
    def capacity(self):
        return self.num_sets * self.E * self.block_size

    @property
    def torn_down(self):
        return self._valid is None

    def decode(self, address):
        return decode_address(address, self.s, self.b)

    def _set_bounds(self, set_index):
        if self.torn_down:
            raise CacheTornDown("cache storage has already been released")
        start = set_index * self.E
        return start, start + self.E

    def line(self, set_index, way):
        start, _ = self._set_bounds(set_index)
        i = start + way
        return CacheLine(self._valid[i], self._dirty[i], self._tags[i], self._recency[i])

    def lines(self, set_index):
        return [self.line(set_index, way) for way in range(self.E)]

    def dirty_resident_bytes(self):
        """Recount dirty bytes from line state, independent of any Statistics."""
        if self.torn_down:
            raise CacheTornDown("cache storage has already been released")
        dirty_lines = sum(1 for v, d in zip(self._valid, self._dirty) if v and d)
        return dirty_lines * self.block_size

    def _touch(self, start, stop, i):
        # age the whole set, then reset the touched line
        recency = self._recency
        for j in range(start, stop):
            recency[j] += 1
        recency[i] = 0

    def access(self, set_index, tag, kind, stats):
        """
        Apply one load or store of block `tag` to set `set_index`.

        Updates line state and `stats` in place and returns a pair
        (AccessOutcome, dirty_writeback) where dirty_writeback is True
        only when a dirty victim was evicted.
        """
        start, stop = self._set_bounds(set_index)
        valid = self._valid
        tags = self._tags
        is_store = kind == AccessKind.STORE

        empty = -1
        for i in range(start, stop):
            if valid[i]:
                if tags[i] == tag:
                    stats.hits += 1
                    self._touch(start, stop, i)
                    if is_store and not self._dirty[i]:
                        self._dirty[i] = True
                        stats.dirty_bytes_resident += self.block_size
                    return AccessOutcome.HIT, False
            elif empty < 0:
                empty = i

        stats.misses += 1
        if empty >= 0:
            valid[empty] = True
            tags[empty] = tag
            self._dirty[empty] = is_store
            self._touch(start, stop, empty)
            if is_store:
                stats.dirty_bytes_resident += self.block_size
            return AccessOutcome.MISS, False

        stats.evictions += 1
        # max() keeps the first maximum, i.e. the lowest index among ties
        i = max(range(start, stop), key=self._recency.__getitem__)
        dirty_victim = self._dirty[i]
        if dirty_victim:
            stats.dirty_bytes_resident -= self.block_size
            stats.dirty_bytes_evicted += self.block_size
        tags[i] = tag
        self._dirty[i] = is_store
        self._touch(start, stop, i)
        if is_store:
            stats.dirty_bytes_resident += self.block_size
        return AccessOutcome.MISS_EVICT, dirty_victim

    def teardown(self):
        self._valid = None
        self._dirty = None
        self._tags = None
        self._recency = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self.torn_down:
            self.teardown()
        return False

    def geometry(self):
        return {
            "s": self.s,
            "E": self.E,
            "b": self.b,
            "num_sets": self.num_sets,
            "block_size": self.block_size,
            "capacity_bytes": self.capacity,
            "used_lines": 0 if self.torn_down else sum(self._valid),
        }
