# cache.py
from collections import namedtuple

ADDRESS_BITS = 64
LOAD = "L"
STORE = "S"


class SimulatorError(Exception):
    """Base class for fatal simulator errors."""


class ConfigError(SimulatorError):
    """Invalid cache geometry or simulator configuration."""


AccessResult = namedtuple(
    "AccessResult",
    "hit evicted evicted_was_dirty line_became_dirty line_was_already_dirty",
)

AccessEvent = namedtuple("AccessEvent", "op address hit evicted evicted_was_dirty")


def check_geometry(s, b, E):
    for name, value in (("s", s), ("b", b), ("E", E)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer, got {value!r}")
    if s < 0 or b < 0:
        raise ConfigError(f"s and b must be non-negative (s={s}, b={b})")
    if E <= 0:
        raise ConfigError(f"E must be at least 1 (E={E})")
    if s + b > ADDRESS_BITS:
        raise ConfigError(
            f"s + b = {s + b} exceeds the {ADDRESS_BITS}-bit address width"
        )


def decode_address(address, s, b):
    """
    Split an address into (tag, set_index).
    The low b bits are the block offset and are dropped.
    """
    set_index = (address >> b) & ((1 << s) - 1)
    tag = address >> (s + b)
    return tag, set_index


class CacheLine:
    __slots__ = ("valid", "tag", "dirty", "last_access")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.dirty = False
        self.last_access = 0

    def fill(self, tag, now, dirty):
        self.valid = True
        self.tag = tag
        self.dirty = dirty
        self.last_access = now

    def __repr__(self):
        if not self.valid:
            return "CacheLine(invalid)"
        return f"CacheLine(tag={self.tag:#x}, dirty={self.dirty}, last_access={self.last_access})"


class CacheSet:
    """
    Fixed group of E lines sharing one set index.
    LRU victim = valid line with the smallest last_access timestamp.
    """

    def __init__(self, associativity):
        self.lines = tuple(CacheLine() for _ in range(associativity))

    def find(self, tag):
        for i, line in enumerate(self.lines):
            if line.valid and line.tag == tag:
                return i
        return -1

    def find_free(self):
        for i, line in enumerate(self.lines):
            if not line.valid:
                return i
        return -1

    def find_lru(self):
        # min() keeps the first minimum, so ties go to the lowest slot
        return min(range(len(self.lines)), key=lambda i: self.lines[i].last_access)

    def valid_count(self):
        return sum(1 for line in self.lines if line.valid)

    def dirty_count(self):
        return sum(1 for line in self.lines if line.valid and line.dirty)

    def access(self, tag, now, is_store):
        """
        Look up `tag`, allocating (and evicting if full) on a miss.
        Returns an AccessResult describing what happened.
        """
        idx = self.find(tag)
        if idx != -1:
            line = self.lines[idx]
            line.last_access = now
            became_dirty = False
            already_dirty = line.dirty
            if is_store and not line.dirty:
                line.dirty = True
                became_dirty = True
            return AccessResult(True, False, False, became_dirty, is_store and already_dirty)

        evicted = False
        evicted_was_dirty = False
        idx = self.find_free()
        if idx == -1:
            idx = self.find_lru()
            evicted = True
            evicted_was_dirty = self.lines[idx].dirty
        self.lines[idx].fill(tag, now, is_store)
        return AccessResult(False, evicted, evicted_was_dirty, is_store, False)


class Cache:
    """
    Set-associative write-back cache with LRU replacement.
    Geometry: 2**s sets, E lines per set, 2**b bytes per line.
    Only hit/miss/eviction and dirty-line bookkeeping is modelled; no data.
    """

    def __init__(self, s, b, E, listener=None):
        check_geometry(s, b, E)
        self.s = s
        self.b = b
        self.associativity = E
        self.num_sets = 1 << s
        self.block_size = 1 << b
        try:
            self.sets = [CacheSet(E) for _ in range(self.num_sets)]
        except MemoryError:
            raise ConfigError(
                f"failed to allocate {self.num_sets} sets of {E} lines"
            ) from None
        self.listener = listener
        self.clock = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.dirty_lines_resident = 0
        self.dirty_lines_evicted = 0

    def access(self, op, address):
        """
        Replay one load ("L") or store ("S") of `address`.
        Returns the AccessResult from the target set.
        """
        if op not in (LOAD, STORE):
            raise ValueError(f"unknown operation {op!r}")
        self.clock += 1
        tag, set_index = decode_address(address, self.s, self.b)
        result = self.sets[set_index].access(tag, self.clock, op == STORE)

        if result.hit:
            self.hits += 1
        else:
            self.misses += 1
        if result.evicted:
            self.evictions += 1
            if result.evicted_was_dirty:
                self.dirty_lines_resident -= 1
                self.dirty_lines_evicted += 1
        if result.line_became_dirty:
            self.dirty_lines_resident += 1

        if self.listener is not None:
            self.listener(AccessEvent(op, address, result.hit, result.evicted,
                                      result.evicted_was_dirty))
        return result

    def load(self, address):
        return self.access(LOAD, address)

    def store(self, address):
        return self.access(STORE, address)

    def stats(self):
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "dirty_bytes": self.dirty_lines_resident * self.block_size,
            "dirty_bytes_evicted": self.dirty_lines_evicted * self.block_size,
        }

    def summary(self):
        total = self.hits + self.misses
        summary = {
            "s": self.s,
            "b": self.b,
            "E": self.associativity,
            "num_sets": self.num_sets,
            "block_size": self.block_size,
            "accesses": total,
            "hit_rate": self.hits / total if total else 0,
        }
        summary.update(self.stats())
        return summary
