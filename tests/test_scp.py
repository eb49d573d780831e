from __future__ import annotations

import struct
from pathlib import Path

import pytest

from conftest import build_scp
from scp2mfm import error
from scp2mfm.image.scp import REV_MAX, SCP, SCPHeaderFlags


TRACKS = {
    0: [[100, 200, 300], [400, 0, 5]],
    2: [[160] * 10, [161] * 7],
}


def test_header_fields(scp_file) -> None:
    path = scp_file(tracks=TRACKS, end_track=83)
    with SCP.open(str(path)) as sf:
        hdr = sf.header
        assert hdr.sig == b"SCP"
        assert hdr.version_str == "2.4"
        assert hdr.disk_type_str == "other-320k"
        assert hdr.nr_revs == 2
        assert hdr.start_track == 0
        assert hdr.end_track == 83
        assert hdr.flags & SCPHeaderFlags.INDEXED
        assert hdr.sides_str == "Both"
        assert len(hdr.track_offsets) == 168
        assert hdr.track_offsets[0] == 0x2B0
        assert hdr.track_offsets[1] == 0
        assert hdr.non_empty_tracks() == [0, 2]
        assert sf.verify_checksum()


def test_checksum_mismatch_detected(tmp_path: Path) -> None:
    data = bytearray(build_scp(TRACKS))
    data[-1] ^= 0xFF
    path = tmp_path / "bad.scp"
    path.write_bytes(bytes(data))
    with SCP.open(str(path)) as sf:
        assert not sf.verify_checksum()


def test_bad_signature_rejected(scp_file) -> None:
    path = scp_file(sig=b"HFE")
    with pytest.raises(error.FormatError, match="Not SCP file"):
        SCP.open(str(path))


@pytest.mark.parametrize("nr_revs", [0, REV_MAX + 1])
def test_revolution_count_bounds(tmp_path: Path, nr_revs: int) -> None:
    path = tmp_path / "revs.scp"
    path.write_bytes(build_scp({}, nr_revs=nr_revs))
    with pytest.raises(error.FormatError, match="revolution count"):
        SCP.open(str(path))


def test_cell_width(scp_file) -> None:
    with SCP.open(str(scp_file("a.scp", cell_width=16))) as sf:
        assert sf.header.cell_width == 16
    with pytest.raises(error.FormatError, match="cell width"):
        SCP.open(str(scp_file("b.scp", cell_width=8)))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(error.ImageIOError):
        SCP.open(str(tmp_path / "nope.scp"))


def test_truncated_header(tmp_path: Path) -> None:
    path = tmp_path / "short.scp"
    path.write_bytes(build_scp(TRACKS)[:100])
    with pytest.raises(error.ImageIOError, match="Short read"):
        SCP.open(str(path))

    # Legacy behaviour: the missing table entries read as absent tracks.
    with SCP.open(str(path), pad_short_reads=True) as sf:
        assert sf.header.track_offsets[100] == 0


def test_select_loads_all_revolutions(scp_file) -> None:
    path = scp_file(tracks=TRACKS)
    with SCP.open(str(path)) as sf:
        sf.select(2)
        assert sf.track is not None
        assert sf.track.track_nr == 2
        assert len(sf.dat) == 17
        assert sf.dat == [160] * 10 + [161] * 7
        assert sf.index_ptr == [10, 17]
        assert sf.revolution_window(0) == (0, 10)
        assert sf.revolution_window(1) == (10, 17)

        tdh_offset = sf.header.track_offsets[2]
        rev0 = sf.track.revs[0]
        assert rev0.offset == tdh_offset + 4 + 12 * 2
        assert sf.track.revs[1].offset == rev0.offset + 20


def test_select_track_with_overflow_words(scp_file) -> None:
    path = scp_file(tracks=TRACKS)
    with SCP.open(str(path)) as sf:
        sf.select(0)
        assert sf.dat == [100, 200, 300, 400, 0, 5]
        assert len(sf.dat) == sf.track.nr_samples
        assert sf.index_ptr == [3, 6]
        assert sf.track.revs[1].duration_25ns == 400 + 0x10000 + 5


def test_select_same_track_is_noop(scp_file) -> None:
    path = scp_file(tracks=TRACKS)
    with SCP.open(str(path)) as sf:
        sf.select(0)
        dat = sf.dat
        sf.file.close()  # any re-read would now fail
        sf.select(0)
        assert sf.dat is dat


def test_select_absent_track_keeps_buffer(scp_file) -> None:
    path = scp_file(tracks=TRACKS)
    with SCP.open(str(path)) as sf:
        sf.select(2)
        dat, track = sf.dat, sf.track
        with pytest.raises(error.SelectionError, match="not present"):
            sf.select(1)
        with pytest.raises(error.SelectionError, match="out of range"):
            sf.select(168)
        assert sf.dat is dat
        assert sf.track is track
        assert sf.dat == [160] * 10 + [161] * 7


def test_select_replaces_buffer(scp_file) -> None:
    path = scp_file(tracks=TRACKS)
    with SCP.open(str(path)) as sf:
        sf.select(0)
        first = sf.dat
        sf.select(2)
        assert sf.dat is not first
        assert sf.track.track_nr == 2


def test_wrong_track_number(tmp_path: Path) -> None:
    data = bytearray(build_scp(TRACKS))
    off = struct.unpack("<I", data[16 + 2 * 4 : 16 + 3 * 4])[0]
    data[off + 3] = 7
    path = tmp_path / "wrong.scp"
    path.write_bytes(bytes(data))
    with SCP.open(str(path)) as sf:
        with pytest.raises(error.FormatError, match="Wrong track number"):
            sf.select(2)


def test_missing_track_signature(tmp_path: Path) -> None:
    data = bytearray(build_scp(TRACKS))
    data[0x2B0 : 0x2B0 + 3] = b"XXX"
    path = tmp_path / "nosig.scp"
    path.write_bytes(bytes(data))
    with SCP.open(str(path)) as sf:
        with pytest.raises(error.FormatError, match="track signature"):
            sf.select(0)


def test_truncated_sample_data(tmp_path: Path) -> None:
    data = build_scp({0: [[100, 200, 300, 400]]})
    path = tmp_path / "trunc.scp"
    path.write_bytes(data[:-4])
    with SCP.open(str(path)) as sf:
        with pytest.raises(error.SelectionError, match="overrun"):
            sf.select(0)
        assert sf.dat is None

    with SCP.open(str(path), pad_short_reads=True) as sf:
        sf.select(0)
        assert sf.dat == [100, 200, 0, 0]


def test_close_is_idempotent(scp_file) -> None:
    sf = SCP.open(str(scp_file()))
    sf.select(0)
    sf.close()
    assert sf.dat is None
    assert sf.file is None
    sf.close()


def test_iteration_requires_selection(scp_file) -> None:
    with SCP.open(str(scp_file())) as sf:
        with pytest.raises(error.Fatal, match="No track selected"):
            sf.next_flux(0)
        sf.select(0)
        sf.reset()
        assert [sf.next_flux(0) for _ in range(3)] == [100, 200, 300]


def test_oversized_sample_count_rejected(tmp_path: Path) -> None:
    data = bytearray(build_scp(TRACKS))
    off = struct.unpack("<I", data[16:20])[0]
    # Revolution 0 of track 0 claims far more samples than the file holds.
    data[off + 8 : off + 12] = struct.pack("<I", 0x7FFFFFFF)
    path = tmp_path / "huge.scp"
    path.write_bytes(bytes(data))
    with SCP.open(str(path)) as sf:
        sf.select(2)
        dat = sf.dat
        with pytest.raises(error.SelectionError, match="overrun the image"):
            sf.select(0)
        assert sf.dat is dat
        assert sf.track.track_nr == 2
