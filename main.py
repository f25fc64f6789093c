# main.py
import argparse
import json
import os
import sys

from cache import Cache, ConfigError, SimulatorError
from config import SimConfig
from tracefile import read_trace, replay

HELP_TEXT = """\
-h,  show this help message and exit
-v,  Verbose mode: report effects of each memory operation
-s <s>,  Number of set index bits (there are 2**s sets)
-b <b>,  Number of block  bits (there are 2**b blocks)
-E <E>,  Number of lines per set (associativity)
-t <trace>,  File name of the memory trace to process
--results <path>,  Also write the final summary as JSON

The -s, -b, -E and -t options must be supplied for all simulations.
"""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise ConfigError(f"Error while parsing arguments: {message}")


def build_parser():
    parser = _ArgumentParser(prog="csim", add_help=False)
    parser.add_argument("-h", dest="help", action="store_true")
    parser.add_argument("-v", dest="verbose", action="store_true")
    parser.add_argument("-s", dest="s", type=int)
    parser.add_argument("-b", dest="b", type=int)
    parser.add_argument("-E", dest="E", type=int)
    parser.add_argument("-t", dest="trace_file")
    parser.add_argument("--results", dest="results")
    return parser


def format_event(event):
    parts = [event.op, f"{event.address:x}", "hit" if event.hit else "miss"]
    if event.evicted:
        parts.append("dirty-eviction" if event.evicted_was_dirty else "eviction")
    return " ".join(parts)


def print_event(event):
    print(format_event(event))


def print_summary(stats):
    print(
        "hits:{hits} misses:{misses} evictions:{evictions} "
        "dirty_bytes_in_cache:{dirty_bytes} "
        "dirty_bytes_evicted:{dirty_bytes_evicted}".format(**stats)
    )


def save_results(summary, path):
    dirname = os.path.dirname(path)
    try:
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
    except OSError as e:
        raise ConfigError(f"cannot write results '{path}': {e.strerror}") from e
    return path


def run(cfg, results_path=None):
    cfg.validate()
    cache = Cache(cfg.s, cfg.b, cfg.E, listener=print_event if cfg.verbose else None)
    print(f"s={cfg.s}, E={cfg.E}, b={cfg.b}")
    stats = replay(cache, read_trace(cfg.trace_file))
    # results first, so a failed write leaves no summary line behind
    if results_path:
        save_results(cache.summary(), results_path)
    print_summary(stats)
    return stats


def main(argv=None):
    try:
        args = build_parser().parse_args(argv)
        if args.help:
            print(HELP_TEXT, end="")
            return 0
        if args.verbose:
            print("verbose mode on")
        cfg = SimConfig(args.s, args.b, args.E, args.trace_file, verbose=args.verbose)
        run(cfg, args.results)
    except SimulatorError as e:
        print(f"csim: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
