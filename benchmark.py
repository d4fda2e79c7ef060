# benchmark.py
import os
import json
import time
import threading
import numpy as np
from cache import AccessKind, Cache, InvalidGeometry
from simulator import Simulator
from tracefile import AccessRecord

PATTERNS = ("sequential", "strided", "random", "mixed")


class TraceGenerator:
    """
    Synthetic access stream over a working set of `working_set_bytes`.

    Addresses are multiples of `access_size`. "sequential" walks the
    working set one access at a time, "strided" jumps `stride` bytes,
    "random" picks uniformly and "mixed" is mostly sequential with some
    random accesses.
    """

    def __init__(self, working_set_bytes=64 * 1024, access_pattern="mixed", read_ratio=0.8,
                 access_size=8, stride=64, base_address=0, seed=None):
        if access_pattern not in PATTERNS:
            raise ValueError(f"unknown access pattern {access_pattern!r}")
        self.rng = np.random.default_rng(seed)
        self.access_size = access_size
        self.stride = stride
        self.base_address = base_address
        self.access_pattern = access_pattern
        self.read_ratio = read_ratio
        self.num_slots = max(1, working_set_bytes // access_size)
        self._seq_ptr = 0

    def _next_sequential(self, step):
        addr = self._seq_ptr
        self._seq_ptr = (addr + step) % (self.num_slots * self.access_size)
        return addr

    def _random_address(self):
        return int(self.rng.integers(0, self.num_slots)) * self.access_size

    def _generate_address(self):
        if self.access_pattern == "sequential":
            offset = self._next_sequential(self.access_size)
        elif self.access_pattern == "strided":
            offset = self._next_sequential(self.stride)
        elif self.access_pattern == "random":
            offset = self._random_address()
        else:  # mixed
            if self.rng.random() < 0.8:
                offset = self._next_sequential(self.access_size)
            else:
                offset = self._random_address()
        return self.base_address + offset

    def records(self, num_requests):
        for _ in range(num_requests):
            address = self._generate_address()
            kind = AccessKind.LOAD if self.rng.random() < self.read_ratio else AccessKind.STORE
            yield AccessRecord(kind.value, address, self.access_size)


def generate_trace(num_requests, working_set_bytes=64 * 1024, access_pattern="mixed",
                   read_ratio=0.8, access_size=8, stride=64, seed=None):
    gen = TraceGenerator(working_set_bytes, access_pattern, read_ratio,
                         access_size, stride, seed=seed)
    return list(gen.records(num_requests))


class BenchmarkRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        bench_cfg = cfg["benchmark"]
        self.num_requests = bench_cfg.get("num_requests", 10000)
        self.num_threads = bench_cfg.get("num_threads", 4)
        geometries = bench_cfg.get("geometries") or [cfg.get("cache")]
        try:
            self.geometries = [(g["s"], g["E"], g["b"]) for g in geometries]
        except (KeyError, TypeError):
            raise InvalidGeometry(f"benchmark needs geometries with s, E and b, got {geometries!r}") from None
        self.trace = generate_trace(
            self.num_requests,
            working_set_bytes=bench_cfg.get("working_set_kb", 64) * 1024,
            access_pattern=bench_cfg.get("access_pattern", "mixed"),
            read_ratio=bench_cfg.get("read_ratio", 0.8),
            access_size=bench_cfg.get("access_size", 8),
            stride=bench_cfg.get("stride", 64),
            seed=bench_cfg.get("random_seed", None),
        )
        self.results_lock = threading.Lock()
        self.results = []
        self.errors = []

    def _simulate(self, geometry):
        s, E, b = geometry
        with Cache(s, E, b) as cache:
            capacity = cache.capacity
            stats = Simulator(cache).run(self.trace)
        return {
            "s": s,
            "E": E,
            "b": b,
            "capacity_bytes": capacity,
            "hit_rate": stats.hit_rate,
            **stats.as_dict(),
        }

    def _worker(self, geometries):
        # every geometry gets its own cache; only the result lists are shared
        try:
            local_results = [self._simulate(g) for g in geometries]
        except Exception as exc:
            with self.results_lock:
                self.errors.append(exc)
            return
        with self.results_lock:
            self.results.extend(local_results)

    def run(self):
        self.results = []
        self.errors = []
        threads = []
        num_threads = max(1, min(self.num_threads, len(self.geometries)))
        start = time.time()
        for k in range(num_threads):
            t = threading.Thread(target=self._worker, args=(self.geometries[k::num_threads],))
            t.start()
            threads.append(t)
        for t in threads:
            t.join()
        end = time.time()
        if self.errors:
            raise self.errors[0]

        order = {g: i for i, g in enumerate(self.geometries)}
        self.results.sort(key=lambda r: order[(r["s"], r["E"], r["b"])])
        summary = {
            "total_requests": len(self.trace),
            "access_pattern": self.cfg["benchmark"].get("access_pattern", "mixed"),
            "num_geometries": len(self.results),
            "duration_s": end - start,
        }
        return summary, self.results

    def save_results(self, summary, results, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        with open(path, "w") as f:
            json.dump({"summary": summary, "results": results}, f, indent=2)
        return path
