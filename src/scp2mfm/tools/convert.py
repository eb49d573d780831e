# scp2mfm/tools/convert.py
#
# scp2mfm control script: Convert an SCP flux image to a raw MFM bitstream.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

description = "Decode an SCP flux image into a raw MFM bitstream."

from typing import BinaryIO, Optional

import os

from scp2mfm.tools import util
from scp2mfm import error
from scp2mfm.codec.mfm import MFMWriter
from scp2mfm.image.scp import SCP
from scp2mfm.track import PLL, PLLDecoder

NR_TRACKS = 160           # 80 cylinders, 2 heads
EMPTY_TRACK_BYTES = 6400  # MFM-encoded zero bytes in an empty track
TRACK_HALFBITS = 12800*8  # Minimum half-bits output per track


def decode_track(sf: SCP, writer: MFMWriter, rev: int,
                 pll: Optional[PLL] = None) -> int:
    """Decodes revolution @rev of the selected track into @writer, then
    pads the track out to its minimum length. Returns the number of
    half-bits that were decoded from flux.
    """
    flux = sf.flux_iter()
    dec = PLLDecoder(flux, rev, pll)
    dec.next_bit() # Ignore first half-bit.
    n = 0
    for halfbit in dec.bits():
        writer.write_halfbit(halfbit)
        n += 1

    # Fill the rest of the track.
    nr = n
    while nr < TRACK_HALFBITS:
        writer.write_halfbit(not writer.last)
        nr += 1
    return n


def empty_track(writer: MFMWriter) -> None:
    for _ in range(EMPTY_TRACK_BYTES):
        writer.write_byte(0)


def write_mfm(sf: SCP, fout: BinaryIO, rev: int,
              pll: Optional[PLL] = None,
              tracks: Optional[util.TrackSet] = None) -> None:

    hdr = sf.header
    error.check(0 <= rev < hdr.nr_revs,
                "Revolution %d out of range 0..%d" % (rev, hdr.nr_revs-1))

    writer = MFMWriter()
    for tnr in range(NR_TRACKS):

        # Start new track.
        writer.reset()

        tspec = 'T%u.%u' % (tnr//2, tnr&1)
        if ((tracks is not None and tnr not in tracks)
            or tnr < hdr.start_track or tnr > hdr.end_track):
            empty_track(writer)
            summary = None
        else:
            try:
                sf.select(tnr)
            except error.SelectionError as err:
                print('%s: %s: Empty' % (tspec, err))
                empty_track(writer)
                summary = None
            else:
                start, end = sf.revolution_window(rev)
                if any(sf.dat[start:end]):
                    n = decode_track(sf, writer, rev, pll)
                    summary = 'Decoded %u half-bits' % n
                else:
                    # Nothing but overflow markers, or no samples at all.
                    print('%s: Revolution %d contains no flux: Empty'
                          % (tspec, rev))
                    empty_track(writer)
                    summary = None

        nbytes = writer.flush(fout)
        if summary is not None:
            print('%s: %s (%u bytes)' % (tspec, summary, nbytes))


def main(argv) -> None:

    epilog = util.tspec_desc + "\n" + util.pllspec_desc
    parser = util.ArgumentParser(usage='%(prog)s [options] in_file out_file',
                                 epilog=epilog)
    parser.add_argument("--revs", type=util.uint, default=0, metavar="N",
                        help="revolution to decode")
    parser.add_argument("--tracks", type=util.TrackSet, metavar="TSPEC",
                        help="which tracks to decode (others are emitted "
                        "empty)")
    parser.add_argument("--pll", type=PLL, metavar="PLLSPEC",
                        help="manual PLL parameter override")
    parser.add_argument("--pad-short-reads", action="store_true",
                        help="zero-pad truncated image data instead of "
                        "failing")
    parser.add_argument("-n", "--no-clobber", action="store_true",
                        help="do not overwrite an existing file")
    parser.add_argument("in_file", help="input SCP filename")
    parser.add_argument("out_file", help="output MFM filename")
    parser.description = description
    parser.prog += ' ' + argv[1]
    args = parser.parse_args(argv[2:])

    if args.pll is not None:
        print(args.pll)

    with SCP.open(args.in_file, args.pad_short_reads) as sf:
        print("Converting %s revolution %d -> %s"
              % (args.in_file, args.revs, args.out_file))
        try:
            fout = open(args.out_file, ('wb','xb')[args.no_clobber])
        except FileExistsError:
            raise error.Fatal("%s: File exists" % args.out_file)
        save = False
        try:
            write_mfm(sf, fout, args.revs, args.pll, args.tracks)
            save = True
        finally:
            # Always close the file.
            fout.close()
            if not save:
                # An error occurred: We remove the target file.
                os.remove(args.out_file)


# Local variables:
# python-indent: 4
# End:
