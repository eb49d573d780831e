# cli.py
#
# scp2mfm command line interface.
#
# This is free and unencumbered software released into the public domain.
# See the file COPYING for more details, or visit <http://unlicense.org>.

import sys, time, textwrap
import importlib

from scp2mfm import error

actions = [ 'info',
            'convert' ]

options = [ ('--time', 'Print elapsed time after action is executed'),
            ('--stdout', 'Log progress to stdout instead of stderr'),
            ('--bt', 'Show a backtrace instead of a fatal error summary') ]

def load_action(name):
    return importlib.import_module('scp2mfm.tools.' + name)

def usage(prog):
    print("Usage: %s [%s] action [-h] ..."
          % (prog, '] ['.join(o for o, _ in options)))
    for opt, desc in options:
        print('  %-12s%s' % (opt, desc))
    print('  %-12s%s' % ('-h, --help', 'Show help message for the action'))
    print("Actions:")
    for a in actions:
        print('  %-12s%s' % (a, load_action(a).description))
    return 1

def fatal(err):
    print("** FATAL ERROR:")
    print(textwrap.dedent(str(err)))
    return 1

def main(argv=None):
    if argv is None:
        argv = sys.argv
    prog, args = argv[0], argv[1:]

    flags = set()
    while args and args[0].startswith('--'):
        if args[0] not in dict(options):
            return usage(prog)
        flags.add(args.pop(0))

    if not args or args[0] not in actions:
        return usage(prog)

    # Progress goes to stderr unless asked otherwise.
    if '--stdout' not in flags:
        sys.stderr.reconfigure(line_buffering=True)
        sys.stdout = sys.stderr

    start_time = time.time()
    action = load_action(args[0])
    try:
        res = action.main([prog] + args) or 0
    except KeyboardInterrupt:
        if '--bt' in flags: raise
        res = 1
    except (error.Fatal, OSError) as err:
        if '--bt' in flags: raise
        res = fatal(err)

    if '--time' in flags:
        print("Time elapsed: %.2f seconds" % (time.time() - start_time))

    return res

# Local variables:
# python-indent: 4
# End:
