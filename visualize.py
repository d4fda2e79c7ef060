# visualize.py
import os
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_hit_miss_rate(stats, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss']
    sizes = [stats.hits, stats.misses]
    if not any(sizes):
        sizes = [0, 1]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title(f"Cache Hit/Miss Rate ({stats.accesses} accesses)")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_sweep(results, outpath):
    """Miss rate and dirty bytes evicted for each simulated geometry."""
    _ensure_dir(outpath)
    labels = [f"s={r['s']} E={r['E']} b={r['b']}" for r in results]
    miss_rates = [1.0 - r["hit_rate"] for r in results]
    evicted = [r["dirty_bytes_evicted"] for r in results]
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(8,6), sharex=True)
    ax1.bar(labels, miss_rates)
    ax1.set_ylabel("Miss rate")
    ax1.set_title("Cache configuration sweep")
    ax1.grid(True, axis="y")
    ax2.bar(labels, evicted, color="tab:orange")
    ax2.set_ylabel("Dirty bytes evicted")
    ax2.grid(True, axis="y")
    plt.setp(ax2.get_xticklabels(), rotation=30, ha="right")
    fig.tight_layout()
    fig.savefig(outpath)
    plt.close(fig)
