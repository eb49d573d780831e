# scp2mfm/image/scp.py
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

from __future__ import annotations
from typing import BinaryIO, List, Optional, Tuple

import os, struct
from enum import IntEnum, IntFlag

from scp2mfm import error
from scp2mfm.flux import FluxIterator

#  SCP image specification can be found at Jim Drew's site:
#  https://www.cbmstuff.com/downloads/scp/scp_image_specs.txt

HEADER_SIZE = 0x2b0
TRACK_MAX   = 168  # Entries in the track offset table
REV_MAX     = 32   # Revolutions per track we are prepared to load

# Names for disktype byte in SCP file header
DiskType = {
    'c64':         0x00,
    'amiga':       0x04,
    'amigahd':     0x08,
    'atari800-sd': 0x10,
    'atari800-dd': 0x11,
    'atari800-ed': 0x12,
    'atarist-ss':  0x14,
    'atarist-ds':  0x15,
    'appleii':     0x20,
    'appleiipro':  0x21,
    'apple-400k':  0x24,
    'apple-800k':  0x25,
    'apple-1m44':  0x26,
    'ibmpc-360k':  0x30,
    'ibmpc-720k':  0x31,
    'ibmpc-1m2':   0x32,
    'ibmpc-1m44':  0x33,
    'trs80_sssd':  0x40,
    'trs80_ssdd':  0x41,
    'trs80_dssd':  0x42,
    'trs80_dsdd':  0x43,
    'ti-99/4a':    0x50,
    'roland-d20':  0x60,
    'amstrad-cpc': 0x70,
    'other-320k':  0x80,
    'other-1m2':   0x81,
    'other-720k':  0x84,
    'other-1m44':  0x85,
    'tape-gcr1':   0xe0,
    'tape-gcr2':   0xe1,
    'tape-mfm':    0xe2,
    'hdd-mfm':     0xf0,
    'hdd-rll':     0xf1
}


class SCPHeaderFlags(IntFlag):
    INDEXED       = 1<<0  # image used the index mark to cue tracks
    TPI_96        = 1<<1  # drive is 96 TPI, otherwise 48 TPI
    RPM_360       = 1<<2  # drive is 360RPM, otherwise 300RPM
    NORMALISED    = 1<<3  # flux has been normalized, otherwise is raw
    READWRITE     = 1<<4  # image is read/write capable, otherwise read-only
    FOOTER        = 1<<5  # image contains an extension footer
    EXTENDED_MODE = 1<<6  # image is the extended type for other media
    FLUX_CREATOR  = 1<<7  # image was created by a non SuperCard Pro Device


class SideSelect(IntEnum):
    BOTH   = 0
    BOTTOM = 1  # side 0 only
    TOP    = 2  # side 1 only


class SCPHeader:

    def __init__(self, dat: bytes) -> None:
        (self.sig, self.version, self.disk_type, self.nr_revs,
         self.start_track, self.end_track, flags, self.cell_width,
         self.sides, self.resolution,
         self.checksum) = struct.unpack("<3s9BI", dat[0:16])
        self.flags = SCPHeaderFlags(flags)
        # Dense table indexed by track number. Zero marks an absent track.
        self.track_offsets: Tuple[int, ...] = struct.unpack(
            "<%dI" % TRACK_MAX, dat[16:HEADER_SIZE])

    @property
    def version_str(self) -> str:
        return '%d.%d' % (self.version >> 4, self.version & 15)

    @property
    def disk_type_str(self) -> str:
        for name, code in DiskType.items():
            if code == self.disk_type:
                return name
        return '0x%02x' % self.disk_type

    @property
    def sides_str(self) -> str:
        try:
            return { SideSelect.BOTH:   'Both',
                     SideSelect.BOTTOM: 'Bottom only',
                     SideSelect.TOP:    'Top only' }[SideSelect(self.sides)]
        except ValueError:
            return '%d' % self.sides

    def non_empty_tracks(self) -> List[int]:
        return [i for i, off in enumerate(self.track_offsets) if off]


class SCPRevolution:

    def __init__(self, duration_25ns: int, nr_samples: int,
                 offset: int) -> None:
        self.duration_25ns = duration_25ns
        self.nr_samples = nr_samples
        self.offset = offset # absolute file offset of the sample run

    @property
    def duration_ms(self) -> float:
        return self.duration_25ns * 0.000025


class SCPTrackHeader:

    def __init__(self, track_nr: int, revs: List[SCPRevolution]) -> None:
        self.track_nr = track_nr
        self.revs = revs

    @classmethod
    def from_bytes(cls, dat: bytes, tdh_offset: int) -> SCPTrackHeader:
        """Parses a Track Data Header located at @tdh_offset in the image.
        Sample offsets are rebased to be absolute within the image.
        """
        sig, tnr = struct.unpack("<3sB", dat[:4])
        error.check(sig == b"TRK", "SCP: Missing track signature",
                    error.FormatError)
        revs = []
        for i in range(4, len(dat), 12):
            ticks, nr, off = struct.unpack("<3I", dat[i:i+12])
            revs.append(SCPRevolution(ticks, nr, tdh_offset + off))
        return cls(tnr, revs)

    @property
    def nr_samples(self) -> int:
        return sum(rev.nr_samples for rev in self.revs)


class SCP:
    """A SuperCard Pro flux image, opened read-only.

    The header is read once. Flux samples are loaded one track at a time
    by select(); only the most recently selected track is held in memory.
    """

    # 40MHz
    sample_freq = 40000000
    header: SCPHeader


    def __init__(self, name: str, pad_short_reads = False) -> None:
        self.filename = name
        self.pad_short_reads = pad_short_reads
        self.file: Optional[BinaryIO] = None
        self.track: Optional[SCPTrackHeader] = None
        self.dat: Optional[List[int]] = None
        self.index_ptr: List[int] = []
        self.iter: Optional[FluxIterator] = None


    @classmethod
    def open(cls, name: str, pad_short_reads = False) -> SCP:
        obj = cls(name, pad_short_reads)
        try:
            obj.file = open(name, "rb")
        except OSError as err:
            raise error.ImageIOError("%s: %s" % (name, err.strerror))
        try:
            obj.read_header()
        except error.Fatal:
            obj.close()
            raise
        return obj


    def read_header(self) -> None:
        dat = self._read(HEADER_SIZE, error.ImageIOError)
        self.header = hdr = SCPHeader(dat)
        error.check(hdr.sig == b"SCP",
                    "%s: Not SCP file" % self.filename, error.FormatError)
        error.check(1 <= hdr.nr_revs <= REV_MAX,
                    "%s: Invalid revolution count = %u"
                    % (self.filename, hdr.nr_revs), error.FormatError)
        error.check(hdr.cell_width in (0, 16),
                    "%s: Unsupported cell width = %u"
                    % (self.filename, hdr.cell_width), error.FormatError)


    def close(self) -> None:
        self.dat = None
        self.index_ptr = []
        self.track = None
        self.iter = None
        if self.file is not None:
            self.file.close()
            self.file = None


    def __enter__(self) -> SCP:
        return self

    def __exit__(self, type, value, tb):
        self.close()


    def _seek(self, offset: int, exc) -> None:
        assert self.file is not None
        try:
            self.file.seek(offset)
        except (OSError, ValueError) as err:
            raise exc("%s: Cannot seek to offset %u: %s"
                      % (self.filename, offset, err))


    def _read(self, nr: int, exc) -> bytes:
        assert self.file is not None
        pos = self.file.tell()
        try:
            dat = self.file.read(nr)
        except OSError as err:
            raise exc("%s: %s" % (self.filename, err.strerror))
        if len(dat) < nr:
            error.check(self.pad_short_reads,
                        "%s: Short read at offset %u (%u of %u bytes)"
                        % (self.filename, pos, len(dat), nr), exc)
            print("SCP: WARNING: Short read at offset %u, padding %u bytes"
                  % (pos, nr - len(dat)))
            dat += bytes(nr - len(dat))
        return dat


    def select(self, tn: int) -> None:
        """Loads the flux samples of track @tn, unless already loaded.
        On failure the previously loaded track remains selected.
        """

        # Track already loaded?
        if self.dat is not None and self.track is not None \
           and self.track.track_nr == tn:
            return

        error.check(0 <= tn < TRACK_MAX,
                    "SCP: Track %d out of range" % tn, error.SelectionError)
        tdh_offset = self.header.track_offsets[tn]
        error.check(tdh_offset != 0,
                    "SCP: Track %d not present" % tn, error.SelectionError)

        # Read track header.
        self._seek(tdh_offset, error.SelectionError)
        thdr = self._read(4 + 12 * self.header.nr_revs, error.SelectionError)
        track = SCPTrackHeader.from_bytes(thdr, tdh_offset)
        error.check(track.track_nr == tn,
                    "SCP: Wrong track number %u in header of track %u"
                    % (track.track_nr, tn), error.FormatError)

        # Sample runs must lie within the image, unless we are padding.
        if not self.pad_short_reads:
            size = os.fstat(self.file.fileno()).st_size
            for i, rev in enumerate(track.revs):
                error.check(rev.offset + rev.nr_samples * 2 <= size,
                            "SCP: Track %u revolution %u: %u samples at "
                            "offset %u overrun the image"
                            % (tn, i, rev.nr_samples, rev.offset),
                            error.SelectionError)

        # Read the flux samples of every revolution into one buffer, noting
        # where each revolution ends.
        try:
            dat = [0] * track.nr_samples
        except MemoryError:
            raise error.SelectionError(
                "SCP: Track %u: Cannot allocate %u samples"
                % (tn, track.nr_samples))
        index_ptr = []
        datsz = 0
        for rev in track.revs:
            self._seek(rev.offset, error.SelectionError)
            raw = self._read(rev.nr_samples * 2, error.SelectionError)
            dat[datsz:datsz+rev.nr_samples] = struct.unpack(
                ">%dH" % rev.nr_samples, raw)
            datsz += rev.nr_samples
            index_ptr.append(datsz)

        self.track, self.dat, self.index_ptr = track, dat, index_ptr
        self.iter = FluxIterator(dat, index_ptr)


    def flux_iter(self) -> FluxIterator:
        """Returns a new iterator over the selected track's samples."""
        error.check(self.dat is not None, "SCP: No track selected")
        return FluxIterator(self.dat, self.index_ptr)


    def reset(self) -> None:
        error.check(self.iter is not None, "SCP: No track selected")
        self.iter.reset()


    def next_flux(self, rev: int) -> int:
        error.check(self.iter is not None, "SCP: No track selected")
        return self.iter.next(rev)


    def revolution_window(self, rev: int) -> Tuple[int, int]:
        return self.flux_iter().window(rev)


    def verify_checksum(self) -> bool:
        """Checks the stored checksum: a 32-bit sum of every byte which
        follows the 16-byte header block.
        """
        assert self.file is not None
        self._seek(16, error.ImageIOError)
        csum = 0
        while True:
            dat = self.file.read(1 << 20)
            if not dat:
                break
            csum += sum(dat)
        return (csum & 0xffffffff) == self.header.checksum


# Local variables:
# python-indent: 4
# End:
