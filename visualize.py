# visualize.py
import os
import matplotlib.pyplot as plt

GEOMETRY_KEYS = ("s", "b", "E")
LABELS = {"s": "Set index bits (s)", "b": "Block offset bits (b)", "E": "Associativity (E)"}


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_hit_miss_rate(hit_rate, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss']
    sizes = [hit_rate, 1.0 - hit_rate]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def sweep_points(summaries, key):
    """
    Pick the summaries that differ from the first (base) one only in `key`,
    sorted by that key.
    """
    base = summaries[0]
    others = [k for k in GEOMETRY_KEYS if k != key]
    points = [sm for sm in summaries if all(sm[k] == base[k] for k in others)]
    return sorted(points, key=lambda sm: sm[key])


def plot_sweep(summaries, key, outpath):
    _ensure_dir(outpath)
    points = sweep_points(summaries, key)
    xs = [sm[key] for sm in points]
    fig, ax1 = plt.subplots(figsize=(8,4))
    ax1.plot(xs, [sm["hit_rate"] for sm in points], marker='o', color='tab:blue')
    ax1.set_xlabel(LABELS[key])
    ax1.set_ylabel("Hit rate", color='tab:blue')
    ax1.set_ylim(0, 1)
    ax1.grid(True)
    # misses on a second axis; they span orders of magnitude more than the rate
    ax2 = ax1.twinx()
    ax2.bar(xs, [sm["misses"] for sm in points], alpha=0.3, color='tab:red', width=0.4)
    ax2.set_ylabel("Misses", color='tab:red')
    ax1.set_title(f"Hit rate vs {LABELS[key]}")
    fig.tight_layout()
    fig.savefig(outpath)
    plt.close(fig)
    return outpath
