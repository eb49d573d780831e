from __future__ import annotations

import importlib.util
import struct
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest


def repo_src_path() -> Path:
    """Return the repository's ``src`` directory."""

    return Path(__file__).resolve().parents[1] / "src"


def _ensure_repo_on_path() -> None:
    if importlib.util.find_spec("scp2mfm") is None:
        sys.path.insert(0, str(repo_src_path()))


_ensure_repo_on_path()


def build_scp(
    tracks: Dict[int, Sequence[Sequence[int]]],
    nr_revs: Optional[int] = None,
    sig: bytes = b"SCP",
    cell_width: int = 0,
    start_track: int = 0,
    end_track: Optional[int] = None,
    durations: Optional[Dict[int, List[int]]] = None,
) -> bytes:
    """Assemble an SCP image from raw 16-bit sample words per revolution.

    ``tracks`` maps a track number to a list of revolutions, each a list of
    sample words exactly as stored (0 = overflow marker).
    """

    if nr_revs is None:
        nr_revs = max((len(revs) for revs in tracks.values()), default=1)
    if end_track is None:
        end_track = max(tracks, default=0)

    offsets = [0] * 168
    body = bytearray()
    base = 0x2B0
    for tnr in sorted(tracks):
        revs = tracks[tnr]
        offsets[tnr] = base + len(body)
        tdh = bytearray(struct.pack("<3sB", b"TRK", tnr))
        samples = bytearray()
        for i, words in enumerate(revs):
            if durations is not None:
                ticks = durations[tnr][i]
            else:
                ticks = sum(w if w else 0x10000 for w in words)
            rel = 4 + 12 * nr_revs + len(samples)
            tdh += struct.pack("<3I", ticks, len(words), rel)
            samples += struct.pack(">%dH" % len(words), *words)
        body += tdh + samples

    data = struct.pack("<168I", *offsets) + bytes(body)
    header = struct.pack(
        "<3s9BI",
        sig,
        0x24,  # version 2.4
        0x80,  # other-320k
        nr_revs,
        start_track,
        end_track,
        0x01,  # index cued
        cell_width,
        0,  # both sides
        0,
        sum(data) & 0xFFFFFFFF,
    )
    return header + data


@pytest.fixture
def scp_file(tmp_path: Path):
    """Return a factory writing :func:`build_scp` output to a temp file."""

    def _make(name: str = "disk.scp", **kwargs) -> Path:
        tracks = kwargs.pop("tracks", {0: [[100, 200, 300]]})
        path = tmp_path / name
        path.write_bytes(build_scp(tracks, **kwargs))
        return path

    return _make
