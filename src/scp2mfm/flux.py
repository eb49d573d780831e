# scp2mfm/flux.py
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

from __future__ import annotations
from typing import Iterator, Sequence, Tuple

from scp2mfm import error

# SCP samples are counted at 40MHz.
NS_PER_TICK = 25

class FluxIterator:
    """Walks one revolution of a track's sample buffer, yielding flux
    intervals in 25ns ticks.

    The cursor is anchored lazily: the first call to next(rev), and any
    call made once the cursor has reached its bound, (re)opens the window
    of revolution @rev. The sequence therefore wraps around at the end of
    a revolution; callers detect the end by checking .exhausted.
    """

    def __init__(self, dat: Sequence[int], index_ptr: Sequence[int]) -> None:
        self.dat = dat
        self.index_ptr = index_ptr
        self.reset()


    def __str__(self) -> str:
        return ("Flux Iterator: sample %u of %u (%u revolutions)"
                % (self.iter_ptr, self.iter_limit, len(self.index_ptr)))


    def reset(self) -> None:
        self.iter_ptr = 0
        self.iter_limit = 0
        # Number of times a revolution window has been opened since reset.
        self.passes = 0


    @property
    def exhausted(self) -> bool:
        return self.iter_ptr >= self.iter_limit


    def window(self, rev: int) -> Tuple[int, int]:
        """Returns the (start, end) sample offsets of revolution @rev."""
        nr_revs = len(self.index_ptr)
        error.check(0 <= rev < nr_revs,
                    "Revolution %d out of range 0..%d" % (rev, nr_revs-1))
        start = self.index_ptr[rev-1] if rev else 0
        return start, self.index_ptr[rev]


    def next(self, rev: int) -> int:
        val = 0
        wrapped = False
        while True:
            if self.iter_ptr >= self.iter_limit:
                # Wrapping twice in one call means the window holds nothing
                # but overflow markers.
                error.check(not wrapped,
                            "Revolution %d contains no flux" % rev)
                self.iter_ptr, self.iter_limit = self.window(rev)
                error.check(self.iter_ptr < self.iter_limit,
                            "Revolution %d contains no flux" % rev)
                self.passes += 1
                wrapped = True
                val = 0

            t = self.dat[self.iter_ptr]
            self.iter_ptr += 1
            if t != 0:
                return val + t

            # Overflow: the next sample carries a further 65536 ticks.
            val += 0x10000


    def revolution(self, rev: int) -> Iterator[int]:
        """Yields every flux interval of revolution @rev exactly once.
        Overflow markers trailing the final interval are discarded.
        """
        self.reset()
        while True:
            val = self.next(rev)
            if self.passes > 1:
                return
            yield val
            if self.exhausted:
                return


# Local variables:
# python-indent: 4
# End:
