"""
Input alphabet of the codec machines.

Input symbols are single characters.  Besides the data bits there are a few
meta symbols (start/end of file and numbered control symbols) that the
decoders pass through, and some machine-internal bookkeeping symbols that
never take part in decoding.
"""

EPSILON = ''

BIT0 = '0'
BIT1 = '1'

SOF = '^'
EOF = '$'

CONTROL_FIRST = 'A'
CONTROL_LAST = 'Z'

# bookkeeping symbols used while building machines
STRICT_BIT0 = 'x'
STRICT_BIT1 = 'y'
FLUSH = '#'


def is_control(c):
    return len(c) == 1 and CONTROL_FIRST <= c <= CONTROL_LAST


def control_index(c):
    if not is_control(c):
        raise ValueError(f'not a control symbol: {c!r}')
    return ord(c) - ord(CONTROL_FIRST)


def control_symbol(i):
    c = chr(ord(CONTROL_FIRST) + i)
    if not is_control(c):
        raise ValueError(f'no control symbol #{i}')
    return c


def is_meta(c):
    "Start/end of file and control symbols: never part of recovered data."
    return c == SOF or c == EOF or is_control(c)


def is_usable(c):
    "[True/False] a transition reading `c` can be used for decoding."
    return c in (EPSILON, BIT0, BIT1, SOF, EOF) or is_control(c)
