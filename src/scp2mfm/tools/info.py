# scp2mfm/tools/info.py
#
# scp2mfm control script: Display SCP image header and track info.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

description = "Display information about an SCP flux image."

import itertools as it

from scp2mfm.tools import util
from scp2mfm import error
from scp2mfm.image.scp import SCP, SCPHeaderFlags

def print_info_line(name: str, value: str, tab=0) -> None:
    print(''.ljust(tab) + (name + ':').ljust(14-tab) + value)

def flags_str(flags: SCPHeaderFlags) -> str:
    l = [ '96TPI' if flags & SCPHeaderFlags.TPI_96 else '48TPI',
          '360RPM' if flags & SCPHeaderFlags.RPM_360 else '300RPM' ]
    if flags & SCPHeaderFlags.INDEXED:    l.append('Index')
    if flags & SCPHeaderFlags.NORMALISED: l.append('Normalized')
    if flags & SCPHeaderFlags.READWRITE:  l.append('Writeable')
    if flags & SCPHeaderFlags.FOOTER:     l.append('Footer')
    return '%x <%s>' % (flags, ' '.join(l))

def print_disk_header(sf: SCP) -> None:
    hdr = sf.header
    print('Disk Header:')
    print_info_line('Signature', hdr.sig.decode('ascii'), tab=2)
    print_info_line('SCP Version', hdr.version_str, tab=2)
    print_info_line('Disk Type', hdr.disk_type_str, tab=2)
    print_info_line('Revolutions', '%d' % hdr.nr_revs, tab=2)
    print_info_line('Tracks', '%d - %d' % (hdr.start_track, hdr.end_track),
                    tab=2)
    print_info_line('Flags', flags_str(hdr.flags), tab=2)
    print_info_line('Cell Width', '%d' % (hdr.cell_width or 16), tab=2)
    print_info_line('Sides', hdr.sides_str, tab=2)
    print_info_line('Checksum', '%08x (%s)' % (
        hdr.checksum, 'OK' if sf.verify_checksum() else 'BAD'), tab=2)
    print_info_line('Present', util.range_str(hdr.non_empty_tracks()), tab=2)

def print_track(sf: SCP) -> None:
    assert sf.track is not None
    print('Track %d:' % sf.track.track_nr)
    flux = sf.flux_iter()
    for rev, entry in enumerate(sf.track.revs):
        first = list(it.islice(flux.revolution(rev), 4))
        print('  Revolution %d: %u samples, %.3f msec, offset %u, data %s...'
              % (rev, entry.nr_samples, entry.duration_ms, entry.offset,
                 '-'.join(str(x) for x in first)))

def main(argv) -> None:

    epilog = util.tspec_desc
    parser = util.ArgumentParser(usage='%(prog)s [options] file',
                                 epilog=epilog)
    parser.add_argument("--tracks", type=util.TrackSet, metavar="TSPEC",
                        help="which tracks to display")
    parser.add_argument("--pad-short-reads", action="store_true",
                        help="zero-pad truncated image data instead of "
                        "failing")
    parser.add_argument("file", help="SCP filename")
    parser.description = description
    parser.prog += ' ' + argv[1]
    args = parser.parse_args(argv[2:])

    with SCP.open(args.file, args.pad_short_reads) as sf:
        print_disk_header(sf)
        if args.tracks is None:
            return
        for tnr in args.tracks:
            try:
                sf.select(tnr)
            except error.SelectionError as err:
                print('Track %d: %s' % (tnr, err))
                continue
            print_track(sf)


# Local variables:
# python-indent: 4
# End:
