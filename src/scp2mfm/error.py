# scp2mfm/error.py
#
# Error management and reporting.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

class Fatal(Exception):
    pass

class FormatError(Fatal):
    """The image is not a valid SCP container."""
    pass

class ImageIOError(Fatal):
    """The image file could not be opened or read."""
    pass

class SelectionError(Fatal):
    """A track could not be loaded. Callers substitute an empty track."""
    pass

def check(pred, desc, exc=Fatal):
    if not pred:
        raise exc(desc)

# Local variables:
# python-indent: 4
# End:
