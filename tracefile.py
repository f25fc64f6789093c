# tracefile.py
import os
import re
from collections import namedtuple

from cache import ADDRESS_BITS, LOAD, STORE, SimulatorError

MAX_SIZE = 16

TraceRecord = namedtuple("TraceRecord", "op address size")

# " L 7ff000398,8" as written by valgrind --tool=lackey / the cachelab tools
_LINE_RE = re.compile(r"^\s*(\S)\s+(?:0[xX])?([0-9a-fA-F]+)\s*,\s*(-?[0-9]+)\s*$", re.ASCII)


class TraceError(SimulatorError):
    """A trace line that cannot be replayed. Aborts the whole replay."""

    def __init__(self, message, lineno=None, line=None):
        self.lineno = lineno
        self.line = line
        if lineno is not None:
            message = f"line {lineno}: {message}"
        if line is not None:
            message = f"{message}: {line.strip()!r}"
        super().__init__(message)


def parse_line(line, lineno=None):
    """
    Parse one trace line into a TraceRecord.
    Returns None for blank lines; raises TraceError for anything malformed.
    """
    if not line.strip():
        return None
    m = _LINE_RE.match(line)
    if m is None:
        raise TraceError("malformed trace line", lineno, line)
    op, addr_text, size_text = m.groups()
    if op not in (LOAD, STORE):
        raise TraceError(f"invalid operation {op!r}", lineno, line)
    address = int(addr_text, 16)
    if address >= 1 << ADDRESS_BITS:
        raise TraceError("address is out of range", lineno, line)
    size = int(size_text)
    if size < 0 or size >= MAX_SIZE:
        raise TraceError("size is out of range", lineno, line)
    return TraceRecord(op, address, size)


def iter_records(lines):
    for lineno, line in enumerate(lines, 1):
        record = parse_line(line, lineno)
        if record is not None:
            yield record


def decode_lines(raw_lines):
    # traces are plain ASCII; decode line by line so errors keep their line number
    for lineno, raw in enumerate(raw_lines, 1):
        try:
            yield raw.decode("ascii")
        except UnicodeDecodeError:
            raise TraceError("non-ASCII bytes in trace line", lineno,
                             raw.decode("ascii", "backslashreplace")) from None


def read_trace(path):
    """Yield TraceRecords from the trace file at `path`, in file order."""
    with open(path, "rb") as f:
        yield from iter_records(decode_lines(f))


def write_trace(path, records):
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with open(path, "w") as f:
        for rec in records:
            f.write(f"{rec.op} {rec.address:x},{rec.size}\n")
    return path


def replay(cache, records):
    """
    Feed records to `cache` in order and return its final stats.
    A TraceError from the record source propagates and ends the replay.
    """
    for rec in records:
        cache.access(rec.op, rec.address)
    return cache.stats()
