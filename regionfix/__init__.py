"""
regionfix: audit and repair region container files.

A region file stores a 32x32 grid of chunks: a location table and a timestamp table
(one 4096-byte sector each) followed by length-prefixed, optionally compressed chunk
records whose payloads are NBT trees.

Features:

- Bounded NBT decoder that survives truncated, malformed and deeply nested input.
- Per-file scan that classifies damaged records (bad pointers, bad lengths, unknown
  compression, broken compression streams, broken trees, missing fields).
- Optional repairs: sector counts and compression tags are corrected in place,
  unrecoverable records are removed and the file is compacted with the location
  table rewritten last.
- World-level fan-out over all region files with mergeable statistics.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "nbt",
    "tables",
    "records",
    "region",
    "scan",
    "defrag",
    "world",
]

# Programmatic API: regionfix.region.open_container / RegionFile and
# regionfix.world.WorldFolder; the CLI lives in regionfix.cli.
