# tracefile.py
import os
import re
from dataclasses import dataclass

from cache import ADDRESS_BITS, AccessKind, TraceParseError

# "<kind> <hex-address>,<decimal-size>", e.g. "S 7ff0005c8,8"
_LINE_RE = re.compile(r"^(\S)\s+(?:0[xX])?([0-9a-fA-F]+),(\d+)$")


@dataclass(frozen=True)
class AccessRecord:
    kind: str
    address: int
    size: int


def parse_trace_line(line, lineno=0):
    """
    Parse one trace line into an AccessRecord, or None for a blank line.
    The kind character is passed through unchecked.
    """
    text = line.strip()
    if not text:
        return None
    m = _LINE_RE.match(text)
    if m is None:
        raise TraceParseError(f"line {lineno}: cannot parse {text!r}")
    kind, address, size = m.groups()
    address = int(address, 16)
    if address >> ADDRESS_BITS:
        raise TraceParseError(f"line {lineno}: address {address:#x} exceeds {ADDRESS_BITS} bits")
    return AccessRecord(kind, address, int(size))


def parse_trace_lines(lines):
    for lineno, line in enumerate(lines, start=1):
        record = parse_trace_line(line, lineno)
        if record is not None:
            yield record


def read_trace(path):
    """Yield the records of the trace file at `path`, one at a time."""
    with open(path, "r") as f:
        yield from parse_trace_lines(f)


def format_record(record):
    kind = record.kind.value if isinstance(record.kind, AccessKind) else record.kind
    return f"{kind} {record.address:x},{record.size}"


def write_trace(records, path):
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    count = 0
    with open(path, "w") as f:
        for record in records:
            f.write(format_record(record) + "\n")
            count += 1
    return count
