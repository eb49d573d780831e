# scp2mfm/track.py
#
# Software PLL: recovers clocked bitcells from a stream of flux intervals.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

from typing import Iterator, Optional

from scp2mfm.flux import FluxIterator, NS_PER_TICK

# Nominal bitcell period, in nanoseconds: 2us for double density MFM.
CLOCK_CENTRE  = 2000
CLOCK_MAX_ADJ = 10     # +/- 10% adjustment

class PLL:
    def __init__(self, pllspec: str):
        self.period_adj_pct = 5
        self.phase_adj_pct = 60
        for x in pllspec.split(':'):
            k,v = x.split('=')
            if k == 'period':
                self.period_adj_pct = int(v)
            elif k == 'phase':
                self.phase_adj_pct = int(v)
            else:
                raise ValueError()
            if not 0 <= int(v) <= 100:
                raise ValueError()
    def __str__(self) -> str:
        return ("PLL: period_adj=%d%% phase_adj=%d%%"
                % (self.period_adj_pct, self.phase_adj_pct))

# Default: An aggressive PLL which will quickly sync to extreme bit timings.
default_pll = PLL('period=5:phase=60')


def pct(x: int, p: int) -> int:
    """Returns @p percent of @x, truncated towards zero."""
    y = abs(x) * p // 100
    return y if x >= 0 else -y


class PLLDecoder:
    """Decodes one revolution of flux into half-bits, one clock period per
    bit. All timings are integer nanoseconds.

    The decoder never finishes by itself: the caller stops pulling bits
    once the flux iterator is exhausted (see bits()).
    """

    def __init__(self, flux: FluxIterator, rev: int,
                 pll: Optional[PLL] = None,
                 clock_centre: int = CLOCK_CENTRE) -> None:
        self.flux_iter = flux
        if pll is None: pll = default_pll
        self.period_adj_pct = pll.period_adj_pct
        self.phase_adj_pct = pll.phase_adj_pct
        self.clock_centre = clock_centre
        self.clock_min = clock_centre * (100 - CLOCK_MAX_ADJ) // 100
        self.clock_max = clock_centre * (100 + CLOCK_MAX_ADJ) // 100
        self.init(rev)


    def __str__(self) -> str:
        return ("PLL Decoder: rev=%d clock=%dns phase=%dns time=%dns"
                % (self.rev, self.clock, self.flux, self.time))


    def init(self, rev: int) -> None:
        self.rev = rev
        self.clock = self.clock_centre
        self.flux = 0
        self.time = 0
        self.clocked_zeros = 0


    def next_bit(self) -> int:

        # Gather enough flux time to fill at least half a bitcell.
        while self.flux < self.clock // 2:
            self.flux += NS_PER_TICK * self.flux_iter.next(self.rev)

        self.time += self.clock
        self.flux -= self.clock

        if self.flux >= self.clock // 2:
            self.clocked_zeros += 1
            return 0

        # PLL: Adjust clock frequency according to phase mismatch.
        if self.clocked_zeros <= 3:
            # In sync: adjust clock by a fraction of the phase mismatch.
            self.clock += pct(self.flux, self.period_adj_pct)
        else:
            # Out of sync: adjust clock towards centre.
            self.clock += pct(self.clock_centre - self.clock,
                              self.period_adj_pct)
        # Clamp the clock's adjustment range.
        self.clock = min(max(self.clock, self.clock_min), self.clock_max)

        # PLL: Adjust clock window position according to phase mismatch.
        new_flux = pct(self.flux, 100 - self.phase_adj_pct)
        self.time += self.flux - new_flux
        self.flux = new_flux

        self.clocked_zeros = 0
        return 1


    def bits(self) -> Iterator[int]:
        """Yields half-bits until the revolution's flux is used up.
        Flux that wraps around to the start of the revolution is not
        decoded.
        """
        while True:
            bit = self.next_bit()
            if self.flux_iter.passes > 1:
                return
            yield bit
            if self.flux_iter.exhausted:
                return


# Local variables:
# python-indent: 4
# End:
