# config.py
import json
import os

from cache import ConfigError, check_geometry


class SimConfig:
    """Everything the simulator needs before replay starts."""

    def __init__(self, s, b, E, trace_file, verbose=False):
        self.s = s
        self.b = b
        self.E = E
        self.trace_file = trace_file
        self.verbose = verbose

    def validate(self):
        if self.s is None or self.b is None or self.E is None or not self.trace_file:
            raise ConfigError("the -s, -b, -E and -t options must all be supplied")
        check_geometry(self.s, self.b, self.E)
        if not os.path.isfile(self.trace_file) or not os.access(self.trace_file, os.R_OK):
            raise ConfigError(f"cannot open trace file '{self.trace_file}'")
        return self

    @classmethod
    def from_dict(cls, cfg, trace_file=None):
        cache_cfg = cfg.get("cache", {})
        return cls(
            s=cache_cfg.get("set_bits", 4),
            b=cache_cfg.get("block_bits", 4),
            E=cache_cfg.get("associativity", 1),
            trace_file=trace_file or cfg.get("trace_file"),
            verbose=cfg.get("verbose", False),
        )


def load_config(path="config.json"):
    try:
        with open(path, "r") as f:
            cfg = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config '{path}': {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in config '{path}': {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"config '{path}' must be a JSON object")
    return cfg
