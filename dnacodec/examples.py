from dnacodec.machine import Machine
from dnacodec.symbols import EPSILON, EOF


def two_bits_per_base(alphabet='ACGT'):
    "Reads two bits, then writes one base."
    m = Machine()
    m.add_start('S')
    m.add_stop('S')
    m.add_arc('S', '0', EPSILON, 'S0')
    m.add_arc('S', '1', EPSILON, 'S1')
    for i, base in enumerate(alphabet):
        hi, lo = divmod(i, 2)
        m.add_arc(f'S{hi}', str(lo), base, 'S')
    return m


def rotating_code(context=1, alphabet='ACGT'):
    """
    One bit per base, never repeating a base: bit 0 steps one letter forward
    in `alphabet` from the previous base, bit 1 steps two.  States remember
    the last `context` bases, so every state has a left context of that
    length once enough bases have been written.
    """
    m = Machine()
    m.add_start(())
    stack = [()]
    visited = {()}
    while stack:
        state = stack.pop()
        m.add_stop(state)
        prev = alphabet.index(state[-1]) if state else 0
        for bit, step in (('0', 1), ('1', 2)):
            base = alphabet[(prev + step) % len(alphabet)]
            next_state = (state + (base,))[-context:]
            m.add_arc(state, bit, base, next_state)
            if next_state not in visited:
                visited.add(next_state)
                stack.append(next_state)
    return m


def rotating_code_with_eof(alphabet='ACGT'):
    "Like `rotating_code`, but the message ends with an end-of-file marker written as 'TT'."
    m = Machine()
    m.add_start('start')
    states = ['start', *alphabet]
    for state in states:
        prev = alphabet.index(state) if state in alphabet else 0
        for bit, step in (('0', 1), ('1', 2)):
            base = alphabet[(prev + step) % len(alphabet)]
            m.add_arc(state, bit, base, base)
        m.add_arc(state, EOF, 'T', 'eof')
    m.add_arc('eof', EPSILON, 'T', 'end')
    m.add_stop('end')
    return m


def ambiguous_end():
    "Two terminal states explain 'A' with different inputs."
    m = Machine()
    m.add_start('S')
    m.add_arc('S', '0', 'A', 'E0')
    m.add_arc('S', '1', 'A', 'E1')
    m.add_stop('E0')
    m.add_stop('E1')
    return m


def nondeterministic():
    "Both bits lead to the same state with the same output."
    m = Machine()
    m.add_start('S')
    m.add_stop('X')
    m.add_arc('S', '0', 'A', 'X')
    m.add_arc('S', '1', 'A', 'X')
    m.add_arc('X', '0', 'C', 'S')
    return m


def nondeterministic_closure():
    "Both bits lead silently to the same state."
    m = Machine()
    m.add_start('S')
    m.add_arc('S', '0', EPSILON, 'X')
    m.add_arc('S', '1', EPSILON, 'X')
    m.add_arc('X', EPSILON, 'A', 'S')
    m.add_stop('S')
    return m
