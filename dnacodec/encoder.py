import logging

import numpy as np

from dnacodec.errors import DecoderError, NoUsableTransition


logger = logging.getLogger(__name__)


def bits_from_bytes(data, msb0=False):
    "Unpack `data` into a string of '0'/'1' symbols, `msb0` as in `BinaryWriter`."
    bits = np.unpackbits(np.frombuffer(bytes(data), dtype=np.uint8),
                         bitorder='big' if msb0 else 'little')
    return ''.join('1' if b else '0' for b in bits)


class Encoder:
    """
    Runs input symbols through the machine, writing the outputs to `outs`.

    Input-free transitions are followed eagerly, choosing the most probable
    one (the first on ties), so the encoder always rests in a state that
    waits for input or in a terminal state.
    """

    def __init__(self, machine, outs, logger=logger):
        self.machine = machine
        self.outs = outs
        self.logger = logger
        self.current = machine.start
        self.advance()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()

    def _take(self, t):
        self.logger.debug('Transition %s -> %s: input %s, output %s',
                          self.machine.name(self.current),
                          self.machine.name(t.dest),
                          t.input or 'empty', t.output or 'empty')
        if not t.output_empty():
            self.outs.write(t.output)
        self.current = t.dest

    def advance(self, drain=False):
        """
        Follow input-free transitions until a terminal state or a state that
        takes input.  With `drain`, keep going through states that take input
        too, as long as they have an input-free way out.
        """
        visited = set()
        while True:
            ms = self.machine.state[self.current]
            if ms.is_end or (ms.exits_with_input and not drain):
                return
            silent = [t for t in ms.trans if t.input_empty()]
            if not silent:
                return
            if self.current in visited:
                raise DecoderError(f'input-free cycle through state {ms.name}')
            visited.add(self.current)
            self._take(max(silent, key=lambda t: t.prob))

    def encode_symbol(self, sym):
        for t in self.machine.state[self.current].trans:
            if t.input == sym:
                self._take(t)
                self.advance()
                return
        raise NoUsableTransition(sym, [self.machine.name(self.current)], action='encode')

    def encode_string(self, seq):
        for c in seq:
            self.encode_symbol(c)

    def encode_bytes(self, data, msb0=False):
        self.encode_string(bits_from_bytes(data, msb0=msb0))

    def close(self):
        self.advance(drain=True)
        if not self.machine.state[self.current].is_end:
            self.logger.warning('Encoder stopped in non-terminal state %s',
                                self.machine.name(self.current))
