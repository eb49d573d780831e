# scp2mfm/tools/util.py
#
# scp2mfm control script: Utility functions.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

from __future__ import annotations
from typing import List

import argparse, re


class CmdlineHelpFormatter(argparse.ArgumentDefaultsHelpFormatter,
                           argparse.RawDescriptionHelpFormatter):
    def _get_help_string(self, action):
        help = action.help
        if '%no_default' in help:
            return help.replace('%no_default', '')
        if ('%(default)' in help
            or action.default is None
            or action.default is False
            or action.default is argparse.SUPPRESS):
            return help
        return help + ' (default: %(default)s)'


class ArgumentParser(argparse.ArgumentParser):
    def __init__(self, formatter_class=CmdlineHelpFormatter, *args, **kwargs):
        return super().__init__(formatter_class=formatter_class,
                                allow_abbrev=False,
                                *args, **kwargs)

def min_int(_min):
    def x(value):
        ivalue = int(value)
        if ivalue < _min:
            raise argparse.ArgumentTypeError("must be %d or greater" % _min)
        return ivalue
    return x
uint = min_int(0)

tspec_desc = """\
TSPEC: Comma-separated list of SCP track numbers and ranges
  e.g. '0-79,84' (track number is cylinder*2 + head)
"""

pllspec_desc = """\
PLLSPEC: Colon-separated list of:
  period=PCT          :: Period adjustment as percentage of phase error
  phase=PCT           :: Phase adjustment as percentage of phase error
  Defaults: period=5:phase=60
"""

def range_str(l):
    if len(l) == 0:
        return '<none>'
    p, str = None, ''
    for i in l:
        if p is not None and i == p[1]+1:
            p = p[0], i
            continue
        if p is not None:
            str += ('%d,' % p[0]) if p[0] == p[1] else ('%d-%d,' % p)
        p = (i,i)
    if p is not None:
        str += ('%d' % p[0]) if p[0] == p[1] else ('%d-%d' % p)
    return str

class TrackSet:
    """A set of SCP track numbers, parsed from a TSPEC string."""

    def __init__(self, trackspec: str) -> None:
        tracks = set()
        for trange in trackspec.split(','):
            m = re.match(r'(\d+)(-(\d+)(/(\d+))?)?$', trange)
            if m is None:
                raise ValueError()
            if m.group(3) is None:
                s,e,step = int(m.group(1)), int(m.group(1)), 1
            else:
                s,e,step = int(m.group(1)), int(m.group(3)), 1
                if m.group(5) is not None:
                    step = int(m.group(5))
            for t in range(s, e+1, step):
                tracks.add(t)
        self.tracks: List[int] = sorted(tracks)

    def __str__(self):
        return range_str(self.tracks)

    def __iter__(self):
        return iter(self.tracks)

    def __contains__(self, tnr):
        return tnr in self.tracks


# Local variables:
# python-indent: 4
# End:
