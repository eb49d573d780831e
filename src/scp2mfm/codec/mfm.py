# scp2mfm/codec/mfm.py
#
# Raw MFM bitstream output.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

from typing import BinaryIO

from bitarray import bitarray

class MFMWriter:
    """Collects the half-bits of one track and writes them out packed
    eight to a byte, first half-bit in the most significant position.
    """

    def __init__(self) -> None:
        self.bits = bitarray(endian='big')
        self.last = 0

    def __len__(self) -> int:
        return len(self.bits)

    def reset(self) -> None:
        self.bits = bitarray(endian='big')
        self.last = 0

    def write_halfbit(self, b) -> None:
        self.last = 1 if b else 0
        self.bits.append(self.last)

    def write_byte(self, x: int) -> None:
        # MFM: A clock bit is set only between two zero data bits.
        for i in range(7, -1, -1):
            d = (x >> i) & 1
            self.write_halfbit(not (self.last or d))
            self.write_halfbit(d)

    def tobytes(self) -> bytes:
        return self.bits.tobytes()

    def flush(self, fout: BinaryIO) -> int:
        """Writes the track to @fout, zero-padded to a whole byte, and
        starts a new track. Returns the number of bytes written.
        """
        dat = self.tobytes()
        fout.write(dat)
        self.reset()
        return len(dat)

# Local variables:
# python-indent: 4
# End:
