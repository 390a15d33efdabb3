#!/usr/bin/env python3

## commandline script for poking at a server with NNTPClient
##   python -m pynntpclient.cmdclient             -> capabilities
##   python -m pynntpclient.cmdclient GROUP       -> group summary + first article headers
import sys
import logging

from pynntpclient import settings
from pynntpclient.errors import NNTPError
from pynntpclient.nntp import NNTPClient, decode_headers


log = logging.getLogger(__name__)


def printcaps(c):
    caps = c.capabilities()
    for label in sorted(caps):
        sys.stdout.write('%s\n' % ' '.join([label] + caps[label]))


def printgroup(c, group):
    grp = c.group(group)
    sys.stdout.write('%s: %s articles (%s, %s)\n' % (grp.name, grp.number, grp.low, grp.high))
    if not grp.number:
        return
    h = decode_headers(c.head(grp.low))
    sys.stdout.write('%s\n' % grp.low)
    for k, v in h.items():
        sys.stdout.write('\t%s: %s\n' % (k, v))


def main(argv=None, conf=None):
    argv = sys.argv[1:] if argv is None else argv
    conf = settings.SERVERS['default'] if conf is None else conf
    try:
        with NNTPClient(conf) as c:
            if argv:
                printgroup(c, argv[0])
            else:
                printcaps(c)
    except (NNTPError, OSError) as e:
        log.error('%s: %s' % (e.__class__.__name__, e))
        return 1
    return 0


if __name__ == '__main__':
    logging.basicConfig(format='%(levelname)s: %(message)s')
    log.setLevel('INFO')
    sys.exit(main())
