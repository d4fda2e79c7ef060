# main.py
import argparse
import json
import logging
import sys

from benchmark import BenchmarkRunner
from cache import AllocationFailure, Cache, InvalidGeometry, MalformedAccessKind, TraceParseError
from simulator import Simulator
from tracefile import read_trace, write_trace
from visualize import plot_hit_miss_rate, plot_sweep

logger = logging.getLogger(__name__)


def load_config(path="config.json"):
    with open(path, "r") as f:
        return json.load(f)


def format_summary(counters):
    return (
        f"hits:{counters['hits']} misses:{counters['misses']} evictions:{counters['evictions']} "
        f"dirty_bytes_in_cache:{counters['dirty_bytes_resident']} "
        f"dirty_bytes_evicted:{counters['dirty_bytes_evicted']}"
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="csim",
        description="Replay a memory trace against a set-associative LRU cache.",
    )
    parser.add_argument("-v", dest="verbose", action="store_true",
                        help="Optional verbose flag that displays trace info")
    parser.add_argument("-s", type=int, help="Number of set index bits (S = 2^s is the number of sets)")
    parser.add_argument("-E", type=int, help="Associativity (number of lines per set)")
    parser.add_argument("-b", type=int, help="Number of block bits (B = 2^b is the block size)")
    parser.add_argument("-t", dest="tracefile", help="Name of the memory trace to replay")
    parser.add_argument("--config", help="JSON config providing defaults for the options above")
    parser.add_argument("--benchmark", action="store_true",
                        help="Run the synthetic configuration sweep described in the config")
    parser.add_argument("--plot", help="Write a hit/miss pie chart of the run to this path")
    return parser


def run_trace(args, cfg):
    cache_cfg = cfg.get("cache", {})
    s = args.s if args.s is not None else cache_cfg.get("s")
    E = args.E if args.E is not None else cache_cfg.get("E")
    b = args.b if args.b is not None else cache_cfg.get("b")
    tracefile = args.tracefile or cfg.get("trace", {}).get("path")

    if s is None or E is None or b is None or tracefile is None:
        print("Invalid input!")
        return 1
    try:
        cache = Cache(s, E, b)
    except InvalidGeometry:
        print("Invalid input!")
        return 1
    except AllocationFailure as exc:
        logger.error("%s", exc)
        print("Malloc for cache failed")
        return 1

    with cache:
        logger.info("simulating %s on %s", tracefile, cache.geometry())
        try:
            stats = Simulator(cache).run(read_trace(tracefile))
        except OSError as exc:
            logger.error("%s", exc)
            print("Open file error")
            return 1
        except (MalformedAccessKind, TraceParseError) as exc:
            logger.error("%s", exc)
            print("Tracefile error")
            return 1

    print(format_summary(stats.as_dict()))
    if args.plot:
        plot_hit_miss_rate(stats, args.plot)
    return 0


def run_benchmark(cfg):
    print("Starting benchmark with config:", cfg["benchmark"])
    try:
        runner = BenchmarkRunner(cfg)
        summary, results = runner.run()
    except (ValueError, AllocationFailure) as exc:
        logger.error("%s", exc)
        print("Invalid input!")
        return 1
    out_cfg = cfg.get("output", {})
    results_path = runner.save_results(summary, results, out_cfg)
    print("Benchmark Summary:", summary)
    for r in results:
        print(f"s={r['s']} E={r['E']} b={r['b']}: {format_summary(r)}")
    print("Results saved to:", results_path)
    if out_cfg.get("trace_file"):
        count = write_trace(runner.trace, out_cfg["trace_file"])
        print(f"Synthetic trace ({count} accesses) saved to:", out_cfg["trace_file"])

    plot_sweep(results, out_cfg.get("sweep_plot", "results/sweep.png"))
    print("Plots saved in", out_cfg.get("results_dir", "results"))
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    cfg = {}
    if args.config:
        try:
            cfg = load_config(args.config)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("cannot load config %s: %s", args.config, exc)
            print("Invalid input!")
            return 1

    if args.benchmark:
        if "benchmark" not in cfg:
            print("Invalid input!")
            return 1
        return run_benchmark(cfg)
    return run_trace(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
