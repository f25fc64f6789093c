# benchmark.py
import argparse
import json
import os
import sys

import numpy as np

from cache import LOAD, STORE, Cache, ConfigError, SimulatorError, check_geometry
from config import SimConfig, load_config
from tracefile import TraceRecord, replay, write_trace

ACCESS_PATTERNS = ("sequential", "random", "mixed")
SWEEP_KEYS = {"set_bits": "s", "block_bits": "b", "associativity": "E"}


class TraceGenerator:
    def __init__(self, num_requests=10000, working_set_kb=64, block_size=16,
                 read_ratio=0.8, access_pattern="mixed", random_seed=None):
        if access_pattern not in ACCESS_PATTERNS:
            raise ConfigError(f"unknown access_pattern {access_pattern!r}")
        if not 0.0 <= read_ratio <= 1.0:
            raise ConfigError(f"read_ratio must be within [0, 1], got {read_ratio}")
        self.num_requests = num_requests
        self.block_size = block_size
        self.read_ratio = read_ratio
        self.access_pattern = access_pattern
        # one address per block across the working set
        self.num_blocks = max(1, (working_set_kb * 1024) // block_size)
        self.rng = np.random.default_rng(random_seed)

    def _block_numbers(self):
        n = self.num_requests
        sequential = np.arange(n, dtype=np.uint64) % np.uint64(self.num_blocks)
        if self.access_pattern == "sequential":
            return sequential
        scattered = self.rng.integers(0, self.num_blocks, size=n, dtype=np.uint64)
        if self.access_pattern == "random":
            return scattered
        # mixed: mostly sequential with some random
        return np.where(self.rng.random(n) < 0.8, sequential, scattered)

    def generate(self):
        """
        Produce a list of TraceRecords following the configured pattern.
        Addresses land somewhere inside their block; sizes are 1-8 bytes.
        """
        blocks = self._block_numbers()
        offsets = self.rng.integers(0, self.block_size, size=self.num_requests)
        is_load = self.rng.random(self.num_requests) < self.read_ratio
        sizes = self.rng.integers(1, 9, size=self.num_requests)
        records = []
        for block, offset, load, size in zip(blocks, offsets, is_load, sizes):
            address = int(block) * self.block_size + int(offset)
            records.append(TraceRecord(LOAD if load else STORE, address, int(size)))
        return records


class BenchmarkRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        geometry = SimConfig.from_dict(cfg)
        check_geometry(geometry.s, geometry.b, geometry.E)
        self.base = {"s": geometry.s, "b": geometry.b, "E": geometry.E}
        bench_cfg = cfg.get("benchmark", {})
        self.sweep = bench_cfg.get("sweep", {})
        for key in self.sweep:
            if key not in SWEEP_KEYS:
                raise ConfigError(f"cannot sweep over {key!r}")
        self.generator = TraceGenerator(
            num_requests=bench_cfg.get("num_requests", 10000),
            working_set_kb=bench_cfg.get("working_set_kb", 64),
            block_size=1 << self.base["b"],
            read_ratio=bench_cfg.get("read_ratio", 0.8),
            access_pattern=bench_cfg.get("access_pattern", "mixed"),
            random_seed=bench_cfg.get("random_seed", None),
        )
        self.trace_path = bench_cfg.get("trace_out")

    def geometries(self):
        yield dict(self.base)
        for key, values in self.sweep.items():
            for value in values:
                geometry = dict(self.base)
                geometry[SWEEP_KEYS[key]] = value
                if geometry != self.base:
                    yield geometry

    def run(self):
        records = self.generator.generate()
        if self.trace_path:
            try:
                write_trace(self.trace_path, records)
            except OSError as e:
                raise ConfigError(f"cannot write trace '{self.trace_path}': {e.strerror}") from e
        summaries = []
        for geometry in self.geometries():
            cache = Cache(geometry["s"], geometry["b"], geometry["E"])
            replay(cache, records)
            summaries.append(cache.summary())
        return summaries

    def save_results(self, summaries, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        try:
            os.makedirs(results_dir, exist_ok=True)
            with open(path, "w") as f:
                json.dump(summaries, f, indent=2)
        except OSError as e:
            raise ConfigError(f"cannot write results '{path}': {e.strerror}") from e
        return path


def main(argv=None):
    parser = argparse.ArgumentParser(prog="csim-bench",
                                     description="Replay synthetic traces across cache geometries.")
    parser.add_argument("--config", default="config.json")
    parser.add_argument("--no-plots", action="store_true")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
        runner = BenchmarkRunner(cfg)
        print("Starting benchmark with config:", cfg.get("benchmark", {}))
        summaries = runner.run()
        out_cfg = cfg.get("output", {})
        results_path = runner.save_results(summaries, out_cfg)
    except SimulatorError as e:
        print(f"csim-bench: {e}", file=sys.stderr)
        return 1

    for summary in summaries:
        print("s={s} E={E} b={b}: hits={hits} misses={misses} evictions={evictions} "
              "hit_rate={hit_rate:.3f}".format(**summary))
    print("Results saved to:", results_path)

    if not args.no_plots:
        from visualize import plot_hit_miss_rate, plot_sweep
        plot_hit_miss_rate(summaries[0]["hit_rate"],
                           out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png"))
        for key in runner.sweep:
            plot_sweep(summaries, SWEEP_KEYS[key],
                       os.path.join(out_cfg.get("results_dir", "results"), f"sweep_{key}.png"))
        print("Plots saved in", out_cfg.get("results_dir", "results"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
